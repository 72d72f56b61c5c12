"""Local status panel (Flask) and global hotkeys."""
