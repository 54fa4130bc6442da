"""
Core Package.

Contains the driver logic:
- Lint Engine (unit and batch checks)
- Result models
- The external luac runner
"""
