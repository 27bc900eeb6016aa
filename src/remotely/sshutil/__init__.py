"""remotely: remotely/sshutil/__init__.py."""
