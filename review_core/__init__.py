"""
review_core - adaptive review scheduling.

Packages:
- fsrs: per-item memory model (when to review next)
- bkt: per-concept mastery model
- session_builders: due-queue selection and ordering
- session: review session state machine and orchestrator
- persistence: SQL and HTTP storage adapters
- content: item content catalogs
- analytics: learner dashboards and session summaries
"""
