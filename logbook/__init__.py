"""
Logbook - Source Package

Data portability engine for the Logbook freelance work tracker
(tasks, notes, payments, clients).

DESIGN PRINCIPLES:
1. Exports are complete and lossless for valid data
2. Imports never duplicate and never leave dangling references
3. A failed import changes nothing
4. Every export and import is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Logbook Team"
