"""
Connector Gap Inspection
Measures the gap between two edges along operator-defined lines in a live
camera feed and classifies each measurement against tolerance bounds.
"""

__version__ = "1.0.0"
