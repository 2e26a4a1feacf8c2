"""
Configuration — stack registry loading and per-project settings.
"""
