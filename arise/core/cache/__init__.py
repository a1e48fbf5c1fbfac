from arise.core.cache.game_state import GameStateCache, NullGameStateCache, build_game_state_cache

__all__ = ["GameStateCache", "NullGameStateCache", "build_game_state_cache"]
