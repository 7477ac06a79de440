"""
Editing pipeline.

Components:
- prompt_builder.py: prompt text for one task
- response_parser.py: backend payload -> replacement body (+ optional imports)
- import_placement.py: where auxiliary import lines go
- review.py: future-backed review gate
- apply_engine.py: conflict policy, review, atomic replacement
"""
