"""
Core Module

Contains shared infrastructure:
- logger_factory: Structured JSONL health logging
"""
