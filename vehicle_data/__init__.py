"""
vehicle_data - Local backup, restore and export for vehicle-shop data.
"""

__version__ = "1.0.0"
