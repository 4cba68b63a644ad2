"""
Ebbinglish - Vocabulary Mastery Scheduler

Rounds and sessions for first encounters and extra practice, a freeze
ladder that decides when a word is mastered, fixed-interval reviews, and
per-word and per-user activity analytics.

Quick start:
    from ebbinglish import database, study_actions

    database.init_db()
    result = study_actions.create_round(user_id, "Week 1", word_ids)
    if result.ok:
        session = study_actions.start_session(user_id, result.data["round_id"], "normal")
"""

__version__ = "0.1.0"
