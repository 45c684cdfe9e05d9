"""
Collaborative affinity model access.

Modules
-------
affinity_model : AffinityScorer protocol, NeutralAffinityScorer,
                 LightGBMAffinityModel (joblib artifact loader),
                 collaborative_score() and load_affinity_scorer().
"""
