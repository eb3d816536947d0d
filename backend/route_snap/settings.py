from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DISTANCE_STRATEGIES = ("haversine", "cheap_ruler")


class Settings(BaseSettings):
    """Validated settings (env-driven) for the HTTP surface and scripts."""

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default="out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # GeoJSON FeatureCollection of LineStrings; empty starts with an empty network.
    network_path: str = Field(default="", alias="NETWORK_PATH")
    distance_strategy: str = Field(default="haversine", alias="DISTANCE_STRATEGY")

    route_cache_enabled: bool = Field(default=True, alias="ROUTE_CACHE_ENABLED")
    # 0 keeps every entry until the network changes.
    route_cache_max_entries: int = Field(default=0, ge=0, alias="ROUTE_CACHE_MAX_ENTRIES")

    spatial_index_node_size: int = Field(default=64, alias="SPATIAL_INDEX_NODE_SIZE")
    closest_max_results_cap: int = Field(default=500, ge=1, alias="CLOSEST_MAX_RESULTS_CAP")

    @model_validator(mode="after")
    def normalise(self) -> "Settings":
        strategy = str(self.distance_strategy or "haversine").strip().lower()
        if strategy not in DISTANCE_STRATEGIES:
            strategy = "haversine"
        self.distance_strategy = strategy
        self.spatial_index_node_size = min(max(int(self.spatial_index_node_size), 2), 65535)
        return self


settings = Settings()
