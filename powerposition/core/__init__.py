"""
Core package: process-wide settings.
"""
