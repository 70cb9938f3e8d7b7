"""Model Cache/Selector — per-cohort fitted models with explicit state.

Each ``CohortKey`` moves through:

  empty ──fit──▶ fitting ──success──▶ ready ──invalidate──▶ stale
                    │                                          │
                    └──failure: previous state restored        └──fit──▶ fitting

Guarantees:
  - ``get`` only ever returns a model from a ``ready`` entry.
  - At most one fit per key runs at a time (per-key lock); fits for
    different keys run concurrently.
  - The fitter runs outside the state lock.  Its result is published with a
    single assignment of a frozen ``FittedModel``.
  - ``invalidate`` supersedes any in-flight fit: when that fit returns, its
    result is discarded and ``FitSupersededError`` is raised
    (latest request wins, nothing is queued).
  - A failed fit never publishes anything.

Usage::

    cache = ModelCache(config=EngineConfig())
    model = cache.fit(CohortKey(vehicle_class="car", year="2024"), observations)
    baseline = cache.select_baseline(CohortKey(vehicle_class="car", year="2025", region="Nord"))
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

from ser_engine.config.cohort import CohortKey
from ser_engine.config.engine import EngineConfig
from ser_engine.engine.pipeline import fit_cohort
from ser_engine.exceptions import FitSupersededError
from ser_engine.models.observation import Observation
from ser_engine.models.regression import FittedModel

logger = logging.getLogger(__name__)

CacheState = Literal["empty", "fitting", "ready", "stale"]

Fitter = Callable[[Sequence[Observation], CohortKey, EngineConfig], FittedModel]


class ModelStore(Protocol):
    """Optional persistence behind the cache (survives process restarts)."""

    def load(self, cohort: CohortKey) -> FittedModel | None: ...

    def save(self, cohort: CohortKey, model: FittedModel) -> None: ...


@dataclass(frozen=True)
class BaselineSelection:
    """Result of a SER baseline lookup."""

    model: FittedModel
    cohort: CohortKey
    """Key the model was actually found under."""
    used_year: str
    fallback_used: bool
    """True when the year or the region differs from the requested cohort."""


@dataclass
class _CacheEntry:
    state: CacheState = "empty"
    model: FittedModel | None = None
    generation: int = 0
    """Bumped by invalidate / clear; a fit publishes only if it still matches."""


class ModelCache:
    """Thread-safe cache of fitted models keyed by cohort.

    Parameters
    ----------
    fitter : Fitter | None
        ``(observations, cohort, config) -> FittedModel``.  Defaults to
        ``fit_cohort`` (validate → fit → statistics).
    store : ModelStore | None
        Optional persistence.  ``load`` is consulted when a key is empty;
        ``save`` is called after every publish, under the
        per-key fit lock, unless the entry was invalidated first.
    config : EngineConfig | None
        Passed through to the fitter; also supplies the baseline fallback depth.
    """

    def __init__(
        self,
        fitter: Fitter | None = None,
        store: ModelStore | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._fitter = fitter or fit_cohort
        self._store = store
        self._config = config or EngineConfig()

        self._lock = threading.Lock()
        self._entries: dict[CohortKey, _CacheEntry] = {}
        self._fit_locks: dict[CohortKey, threading.Lock] = {}
        self._version = 0
        self._counters: Counter[str] = Counter()

    # ── Reads ──────────────────────────────────────────────────────────

    def get(self, cohort: CohortKey) -> FittedModel | None:
        """Ready model for ``cohort``, or None.  Never triggers a fit."""
        with self._lock:
            entry = self._entries.get(cohort)
            if entry is not None and entry.state == "ready":
                self._counters["hits"] += 1
                logger.debug(f"Cache hit for {cohort.label} (v{entry.model.version})")
                return entry.model
            if self._store is None or (entry is not None and entry.state != "empty"):
                self._counters["misses"] += 1
                logger.debug(f"Cache miss for {cohort.label}")
                return None
            generation = entry.generation if entry is not None else 0

        loaded = self._store.load(cohort)

        with self._lock:
            if loaded is None:
                self._counters["misses"] += 1
                logger.debug(f"Cache miss for {cohort.label} (not in store)")
                return None
            entry = self._entries.setdefault(cohort, _CacheEntry())
            if entry.state == "empty" and entry.generation == generation:
                self._version = max(self._version, loaded.version)
                entry.model = loaded
                entry.state = "ready"
                self._counters["store_loads"] += 1
                logger.debug(f"Loaded {cohort.label} from store (v{loaded.version})")
            return entry.model if entry.state == "ready" else None

    def state(self, cohort: CohortKey) -> CacheState:
        with self._lock:
            entry = self._entries.get(cohort)
            return entry.state if entry is not None else "empty"

    def stats(self) -> dict[str, int]:
        """Counters plus the number of entries in each state."""
        with self._lock:
            result = {
                name: self._counters[name]
                for name in ("hits", "misses", "fits", "failures", "superseded", "store_loads")
            }
            states = Counter(entry.state for entry in self._entries.values())
            for state in ("fitting", "ready", "stale"):
                result[state] = states[state]
            return result

    # ── Writes ─────────────────────────────────────────────────────────

    def fit(
        self,
        cohort: CohortKey,
        observations: Sequence[Observation],
        force: bool = False,
    ) -> FittedModel:
        """Return the ready model for ``cohort``, fitting it first if needed.

        Parameters
        ----------
        cohort : CohortKey
            Cache key; also tells the fitter which predictor kind to use.
        observations : Sequence[Observation]
            Complete fitting set for the cohort.
        force : bool
            Refit even when a ready model exists.

        Raises
        ------
        SEREngineError
            Whatever the fitter raised.  The entry is left as it was.
        FitSupersededError
            The cohort was invalidated or the cache cleared while fitting.
        """
        with self._fit_lock(cohort):
            with self._lock:
                entry = self._entries.setdefault(cohort, _CacheEntry())
                if entry.state == "ready" and not force:
                    self._counters["hits"] += 1
                    return entry.model
                previous_state = entry.state
                entry.state = "fitting"
                generation = entry.generation

            logger.debug(f"Fitting {cohort.label} on {len(observations)} observations")
            try:
                model = self._fitter(observations, cohort, self._config)
            except Exception:
                with self._lock:
                    self._counters["failures"] += 1
                    if entry.generation == generation:
                        entry.state = previous_state
                raise

            with self._lock:
                if entry.generation != generation:
                    self._counters["superseded"] += 1
                    logger.warning(f"Discarding superseded fit for {cohort.label}")
                    raise FitSupersededError(cohort)
                self._version += 1
                published = model.model_copy(update={"version": self._version})
                entry.model = published
                entry.state = "ready"
                self._counters["fits"] += 1

            # Save under the fit lock, and only while the generation still matches.
            if self._store is not None:
                with self._lock:
                    current = entry.generation == generation
                if current:
                    self._store.save(cohort, published)
                else:
                    logger.warning(f"Skipping store save for invalidated {cohort.label}")
        logger.info(
            f"Published model {cohort.label} v{published.version} "
            f"({published.predictor_kind}, R² = {published.r_squared})"
        )
        return published

    def invalidate(self, cohort: CohortKey) -> None:
        """Mark ``cohort`` stale and supersede any fit in flight for it."""
        with self._lock:
            entry = self._entries.get(cohort)
            if entry is None:
                return
            entry.generation += 1
            if entry.state in ("ready", "fitting"):
                entry.state = "stale" if entry.model is not None else "empty"
            logger.debug(f"Invalidated {cohort.label} -> {entry.state}")

    def clear(self) -> None:
        """Drop every entry.  In-flight fits are superseded."""
        with self._lock:
            for entry in self._entries.values():
                entry.generation += 1
            count = len(self._entries)
            self._entries.clear()
            self._fit_locks.clear()
        logger.info(f"Cleared model cache ({count} entries)")

    # ── SER baseline ───────────────────────────────────────────────────

    def select_baseline(
        self,
        cohort: CohortKey,
        fallback_years: int | None = None,
    ) -> BaselineSelection | None:
        """Find the reference model for ``cohort``.

        Tries the requested year, then each earlier year down to
        ``year − fallback_years``; within a year the region-specific key
        comes before the fleet-wide one.  Non-numeric year labels are only
        looked up as-is.
        """
        depth = self._config.baseline_fallback_years if fallback_years is None else fallback_years

        years = [cohort.year]
        if cohort.year.isdigit():
            start = int(cohort.year)
            years = [str(start - offset) for offset in range(depth + 1)]

        for year in years:
            candidates = [cohort.with_year(year)]
            if not cohort.is_all_regions:
                candidates.append(candidates[0].fleet_wide())
            for key in candidates:
                model = self.get(key)
                if model is None:
                    continue
                fallback_used = key != cohort
                if fallback_used:
                    logger.warning(f"No SER model for {cohort.label}; using {key.label} as baseline")
                return BaselineSelection(model=model, cohort=key, used_year=year, fallback_used=fallback_used)

        logger.warning(f"No SER baseline found for {cohort.label} within {depth} year(s)")
        return None

    def _fit_lock(self, cohort: CohortKey) -> threading.Lock:
        with self._lock:
            return self._fit_locks.setdefault(cohort, threading.Lock())
