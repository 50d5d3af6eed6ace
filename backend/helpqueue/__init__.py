"""Help Queue Application Package — office-hours question queue core.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
