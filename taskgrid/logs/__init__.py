"""
Daily log and employee metadata bookkeeping.

Two interchangeable backends: SQLite (repository.py) and tabs of the grid
document (sheet_repository.py). Exactly one is active per deployment.
"""
