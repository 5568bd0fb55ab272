"""
Shared data schemas for zone analyses, insights and export views.
"""
