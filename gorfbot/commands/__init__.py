"""
Gorfbot command modules.

Each module defines its handlers and a register(registry) function that
the plugin loader calls at startup.
"""
