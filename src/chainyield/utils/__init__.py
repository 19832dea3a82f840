"""Money handling, metrics and logging helpers"""
