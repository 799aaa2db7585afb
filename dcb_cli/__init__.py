"""
DCB CLI - Dynamic Consistency Boundary event log tools

Commands:
- dcb log tail/inspect - Event log operations
- dcb scenarios - Run the example domain scenarios
- dcb version - Version information
"""

__version__ = "0.1.0"
