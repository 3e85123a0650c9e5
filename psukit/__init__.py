"""Read, write and inspect PlayStation 2 save formats: PSU, ICN, icon.sys, title.cfg and memory card images."""

__version__ = "0.1.0"