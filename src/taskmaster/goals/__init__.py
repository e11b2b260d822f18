"""
Goal subsystem.

Components:
- models.py: data structures (Goal, Priority, tag set)
- lifecycle.py: complete/undo/edit rules and summaries (pure)
- service.py: user intents -> store mutations, scoped to an Identity
- reactor.py: keeps a GoalBoard current from a store subscription
"""
