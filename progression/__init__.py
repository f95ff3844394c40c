"""
Learner progression engine

Levels, XP awards, quests, streaks, power-ups, badges and reward issuance
for a learning platform.
"""

__version__ = "1.0.0"
