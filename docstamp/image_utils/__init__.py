"""
Geometry and raster utilities underlying the stamping functionality.

The modules in this package are pure: they neither log nor perform I/O,
and can safely be used from multiple threads at once.
"""
