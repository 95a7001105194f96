"""
Core utility modules for shared helper functions across the league apps.
"""
