"""
Recommendation pipeline: profile, candidates, five-signal scoring, ranking
with explanations, and the public entry point.

Modules
-------
profile_builder : build_profile() + compute_profile() + duration_preference()
                  + profile_strength().
candidates      : retrieve_candidates(): unseen, published, public items.
scorer          : ScoreComponents dataclass + compute_score() and the
                  per-signal functions. Pure functions, no DB or I/O.
ranker          : ScoredItem dataclass + rank() + build_explanation().
engine          : ServiceContext + BackgroundTasks +
                  get_personalized_recommendations().
"""
