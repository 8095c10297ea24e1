from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    # Feedback deltas (reward is smaller than penalty)
    positive_delta: float = Field(default=0.05, ge=0.0, le=1.0)
    negative_delta: float = Field(default=0.08, ge=0.0, le=1.0, description="Magnitude of the fitness penalty")

    # Mutation trigger
    mutation_fitness_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    mutation_usage_floor: int = Field(default=10, ge=0)
    neutral_fitness: float = Field(default=0.5, ge=0.0, le=1.0)
    healthy_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # Persistence
    snapshot_path: str = Field(default=os.path.join("gene_pool", "snapshot.json"))
    checkpoint_every: int = Field(default=25, ge=0, description="0 disables periodic checkpoints")
    persist_on_close: bool = Field(default=True)

    # Reproducibility
    global_seed: Optional[int] = Field(default=1337)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    # Load .env if present
    load_dotenv()

    def _bool(name: str, default: bool) -> bool:
        v = os.getenv(name)
        if v is None:
            return default
        return v.strip().lower() in {"1", "true", "yes", "y", "on"}

    return Settings(
        positive_delta=float(os.getenv("PROMPTLAB_POSITIVE_DELTA", "0.05")),
        negative_delta=float(os.getenv("PROMPTLAB_NEGATIVE_DELTA", "0.08")),
        mutation_fitness_threshold=float(os.getenv("PROMPTLAB_MUTATION_FITNESS_THRESHOLD", "0.3")),
        mutation_usage_floor=int(os.getenv("PROMPTLAB_MUTATION_USAGE_FLOOR", "10")),
        neutral_fitness=float(os.getenv("PROMPTLAB_NEUTRAL_FITNESS", "0.5")),
        healthy_threshold=float(os.getenv("PROMPTLAB_HEALTHY_THRESHOLD", "0.5")),
        snapshot_path=os.getenv("PROMPTLAB_SNAPSHOT_PATH", os.path.join("gene_pool", "snapshot.json")),
        checkpoint_every=int(os.getenv("PROMPTLAB_CHECKPOINT_EVERY", "25")),
        persist_on_close=_bool("PROMPTLAB_PERSIST_ON_CLOSE", True),
        global_seed=int(os.getenv("GLOBAL_SEED", "1337")),
    )
