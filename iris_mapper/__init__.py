"""
Iris Zone Mapping System

A rule-based pixel-analysis pipeline that turns a captured eye image into a
quality-gated, normalized iris crop, maps it onto iridology chart zones and
derives colorimetric/textural descriptors and templated wellness reflections.
Not a medical or biometric system.
"""

__version__ = "0.1.0"
__author__ = "Iris Mapper Team"
