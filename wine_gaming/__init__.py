"""
Wine Gaming Setup

Configures a Wine prefix for running Windows games on Linux, tuned to the
detected Intel, NVIDIA or AMD graphics hardware.
"""

APP_NAME = "Wine Gaming Setup"
VERSION = "4.0.0"
