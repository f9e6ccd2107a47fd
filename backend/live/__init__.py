"""
Live match phase tracking.
Reconciles stored fixture phase/score against the provider's live feed and
derives the display minute from the last recorded phase transition.
"""
