"""Editor for CurseForge modpacks and their ServerStarter server configs."""

__version__ = "0.1.0"
