"""Taskboard Service.

A multi-user task and group management service. Users keep personal tasks
and collaborate in groups whose tasks move across a three-column Kanban
board, with every mutation gated by an explicit authorization guard.
"""

__version__ = "0.1.0"
