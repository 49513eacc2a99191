# Infrastructure Layer
"""
Infrastructure layer for external systems (persistent stores).
"""
