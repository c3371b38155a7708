"""State/store layer.

The only place decoded device updates and configuration readings are
merged: :class:`DeviceStateStore` for the always-on device projection and
:class:`ConfigSession` for a device under inspection.
"""
