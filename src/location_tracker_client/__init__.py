"""Client-side control loops for the Live Location Tracker.

The reporting agent pushes a device's position to the registry; the observer
loop polls the registry for the set of active trackers.
"""

__version__ = "1.0.0"
