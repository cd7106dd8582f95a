# config.py – Memory Probe Configuration
# ======================================
# - USER SETTINGS (section 1-3): operator-facing switches, most have env overrides
# - SYSTEM DEFAULTS (section 4+): rarely changed technical settings

import os
import threading

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Runtime overrides (checked by get_config before the module-level defaults)
_config_overrides = {}
_config_lock = threading.RLock()


def set_config_override(key: str, value) -> None:
    """
    Thread-safe config override.

    Allows runtime config changes without mutating globals.
    Use this instead of directly assigning to config.* variables.

    Args:
        key: Config variable name (e.g., 'GC_TIMER_ENABLED')
        value: New value
    """
    with _config_lock:
        _config_overrides[key] = value


def get_config(key: str, default=None):
    """
    Thread-safe config getter.

    Checks runtime overrides first, then falls back to module-level default.

    Args:
        key: Config variable name
        default: Default if key not found

    Returns:
        Config value (override if set, otherwise module default)
    """
    with _config_lock:
        if key in _config_overrides:
            return _config_overrides[key]

    return globals().get(key, default)


def clear_config_overrides() -> None:
    """Clear all runtime config overrides (useful for testing)."""
    with _config_lock:
        _config_overrides.clear()


def _env_flag(name: str, default: bool = False) -> bool:
    """
    Convenience helper to parse boolean environment flags.

    Accepted truthy values: 1, true, yes, on (case-insensitive).
    """
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_bytes(name: str):
    """
    Parse an optional byte count from the environment (empty = unset).

    Unparsable values are kept as the raw string so validate_config() can
    report them.
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return value.strip()


# =============================================================================
# 1. RUNTIME MEMORY CEILING
# =============================================================================

# Explicit maximum memory in bytes reported by MemoryProbe.max_memory().
# None = derive from RLIMIT_AS, then total physical memory.
MAX_MEMORY_BYTES = _env_bytes("MEMPROBE_MAX_MEMORY_BYTES")

# =============================================================================
# 2. GARBAGE COLLECTION TIMING
# =============================================================================

# Install the gc.callbacks timer on first use. False = collection_time() stays 0
GC_TIMER_ENABLED = _env_flag("MEMPROBE_GC_TIMER", True)

# =============================================================================
# 3. HOST INTROSPECTION
# =============================================================================

# False = behave like a locked-down host: physical memory queries raise
# UnsupportedOperation
HOST_MEMORY_INTROSPECTION = _env_flag("MEMPROBE_HOST_INTROSPECTION", True)

# =============================================================================
# 4. LOGGING
# =============================================================================

LOG_LEVEL = "INFO"
HEALTH_LOG_FILE = os.path.join(BASE_DIR, "logs", "health", "health.jsonl")
HEALTH_LOG_BACKUP_DAYS = 14


def validate_config():
    """Validate configuration for fail-fast behaviour."""
    errors = []

    def check_range(name, value, min_val=None, max_val=None, required_type=None):
        if required_type and not isinstance(value, required_type):
            errors.append(f"{name} must be of type {getattr(required_type, '__name__', required_type)}, got {type(value).__name__}")
            return False
        if min_val is not None and value < min_val:
            errors.append(f"{name} = {value} is too small (min: {min_val})")
            return False
        if max_val is not None and value > max_val:
            errors.append(f"{name} = {value} is too large (max: {max_val})")
            return False
        return True

    def check_enum(name, value, valid_values):
        if value not in valid_values:
            errors.append(f"{name} = {value} is invalid. Allowed: {valid_values}")
            return False
        return True

    max_memory = get_config("MAX_MEMORY_BYTES")
    if max_memory is not None:
        if isinstance(max_memory, bool):
            errors.append("MAX_MEMORY_BYTES must be of type int, got bool")
        else:
            check_range("MAX_MEMORY_BYTES", max_memory, 1, 2**63 - 1, int)
    check_range("GC_TIMER_ENABLED", get_config("GC_TIMER_ENABLED"), required_type=bool)
    check_range("HOST_MEMORY_INTROSPECTION", get_config("HOST_MEMORY_INTROSPECTION"), required_type=bool)
    check_range("HEALTH_LOG_BACKUP_DAYS", get_config("HEALTH_LOG_BACKUP_DAYS"), 1, 365, int)
    check_enum("LOG_LEVEL", get_config("LOG_LEVEL"), ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

    if errors:
        error_msg = "[ERROR] CONFIG VALIDATION FAILED!\n" + "\n".join(f"  - {err}" for err in errors)
        raise ValueError(error_msg)
    return True


LOG_LEVEL = os.getenv("MEMPROBE_LOG_LEVEL", LOG_LEVEL)
