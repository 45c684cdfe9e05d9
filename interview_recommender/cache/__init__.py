"""
Caching for the recommendation engine.

Modules
-------
kv_store      : KeyValueStore protocol + InMemoryKeyValueStore + RedisKeyValueStore.
ranking_cache : RankingCache (profile and ranked-list entries, independent TTLs)
                + CacheResult.
"""
