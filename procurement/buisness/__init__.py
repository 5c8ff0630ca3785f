"""
Domain layer for the procurement workflow.
Contains state machines, managers and policies separated from
data persistence and presentation concerns.
"""
