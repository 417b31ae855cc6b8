"""Handlers: What happens around a calendar write

Components:
    blocking.py: Refuse near-certain duplicates, warn on the rest
    formatting.py: Event details and warning text for the agent
    calendar_tools.py: Tool functions and registry
"""
