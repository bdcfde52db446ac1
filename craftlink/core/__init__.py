"""
Core infrastructure layer for CraftLink.

Provides configuration (static environment config and error hierarchy),
structured logging, shared exceptions, and constants. No Discord or
Minecraft dependencies live here.
"""
