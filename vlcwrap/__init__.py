"""Ownership and event plumbing for libvlc, on top of python-vlc's ctypes loader."""

__version__ = "0.1.0"
