"""
Serialization utilities for game history.

Provides JSON/YAML serialization of GameResult records inside a versioned
payload, and the stores the simulator hands finished sessions to.

Payload layout: ``{"version": int, "games": [...newest first], "timestamp": float}``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol
from pathlib import Path
import json
import logging
import os
import time

import numpy as np
import yaml

from config import DEFAULT_CONFIG
from dataclasses_core import CompletionReason, GameResult


logger = logging.getLogger(__name__)


# ==============================================================================
# SERIALIZATION CONVERTERS
# ==============================================================================

class NumpyEncoder(json.JSONEncoder):
    """JSON encoder supporting numpy scalars and enums."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, (np.integer, np.floating, np.bool_)):
            return obj.item()
        elif isinstance(obj, CompletionReason):
            return obj.value
        return super().default(obj)


def serialize_result(result: GameResult) -> Dict[str, Any]:
    """Serialize GameResult to dictionary."""
    return {
        'id': result.result_id,
        'route_id': result.route_id,
        'route_name': result.route_name,
        'final_score': int(result.final_score),
        'target_score': int(result.target_score),
        'is_won': bool(result.is_won),
        'completion_reason': result.completion_reason.value,
        'duration': float(result.duration),
        'average_speed': float(result.average_speed),
        'top_speed': float(result.top_speed),
        'features_found': int(result.features_found),
        'features_completed': int(result.features_completed),
        'completion_rate': float(result.completion_rate),
        'distance_covered': float(result.distance_covered),
        'time_remaining': float(result.time_remaining),
        'timestamp': float(result.timestamp),
    }


def deserialize_result(data: Dict[str, Any]) -> GameResult:
    """Deserialize GameResult from dictionary."""
    return GameResult(
        result_id=str(data['id']),
        route_id=data['route_id'],
        route_name=data.get('route_name', data['route_id']),
        final_score=int(data['final_score']),
        target_score=int(data['target_score']),
        is_won=bool(data['is_won']),
        completion_reason=CompletionReason(data['completion_reason']),
        duration=float(data.get('duration', 0.0)),
        average_speed=float(data.get('average_speed', 0.0)),
        top_speed=float(data.get('top_speed', 0.0)),
        features_found=int(data.get('features_found', 0)),
        features_completed=int(data.get('features_completed', 0)),
        completion_rate=float(data.get('completion_rate', 0.0)),
        distance_covered=float(data.get('distance_covered', 0.0)),
        time_remaining=float(data.get('time_remaining', 0.0)),
        timestamp=float(data.get('timestamp', 0.0)),
    )


# ==============================================================================
# VERSIONED PAYLOAD
# ==============================================================================

# from_version -> function upgrading a payload by one version
MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {}


def register_migration(from_version: int):
    """Decorator registering a one-step payload upgrade."""
    def decorator(func: Callable[[Dict[str, Any]], Dict[str, Any]]):
        MIGRATIONS[from_version] = func
        return func
    return decorator


def migrate_payload(payload: Dict[str, Any], target_version: int) -> Dict[str, Any]:
    """
    Bring a stored payload up to ``target_version``.

    Registered migrations are applied one version at a time; without one the
    payload is relabelled unchanged.
    """
    version = int(payload.get('version', 0))
    if version == target_version:
        return payload

    migrated = dict(payload)
    while version < target_version:
        step = MIGRATIONS.get(version)
        if step is not None:
            migrated = step(migrated)
        version += 1
    logger.info("Migrated history payload from version %s to %s", payload.get('version'), target_version)
    migrated['version'] = target_version
    return migrated


def build_payload(games: List[GameResult], version: int) -> Dict[str, Any]:
    return {
        'version': version,
        'games': [serialize_result(game) for game in games],
        'timestamp': time.time(),
    }


def parse_payload(payload: Dict[str, Any], version: int, max_games: int) -> List[GameResult]:
    """Decode games from a payload, newest first, capped at ``max_games``."""
    if not isinstance(payload, dict):
        raise ValueError("History payload must be a mapping")
    payload = migrate_payload(payload, version)
    games = [deserialize_result(entry) for entry in payload.get('games') or []]
    return games[:max_games]


class HistorySerializer:
    """Text encodings of the versioned history payload."""

    @staticmethod
    def to_json(payload: Dict[str, Any], indent: int = 2) -> str:
        return json.dumps(payload, cls=NumpyEncoder, indent=indent)

    @staticmethod
    def from_json(text: str) -> Dict[str, Any]:
        return json.loads(text)

    @staticmethod
    def to_yaml(payload: Dict[str, Any]) -> str:
        return yaml.dump(payload, default_flow_style=False, sort_keys=False)

    @staticmethod
    def from_yaml(text: str) -> Dict[str, Any]:
        return yaml.safe_load(text)


# ==============================================================================
# HISTORY STORES
# ==============================================================================

class HistoryStore(Protocol):
    """Where finished sessions go."""

    def save(self, result: GameResult) -> bool:
        ...

    def load_all(self) -> List[GameResult]:
        ...

    def clear(self) -> bool:
        ...


class FileHistoryStore:
    """
    History kept in a single file, JSON or YAML by extension.

    Failures are logged at WARNING and reported through return values; no
    method raises for I/O or decoding problems.
    """

    YAML_SUFFIXES = ('.yaml', '.yml')

    def __init__(
        self,
        path: Optional[str] = None,
        max_games: Optional[int] = None,
        version: Optional[int] = None,
    ) -> None:
        """
        Initialize store.

        Args:
            path: History file path (storage default if None)
            max_games: Retention cap
            version: Payload schema version written by this store
        """
        storage = DEFAULT_CONFIG.storage
        self.path = Path(path or storage.history_path)
        self.max_games = max_games if max_games is not None else storage.max_stored_games
        self.version = version if version is not None else storage.version

    @property
    def is_yaml(self) -> bool:
        return self.path.suffix.lower() in self.YAML_SUFFIXES

    def _read(self) -> List[GameResult]:
        if not self.path.exists():
            return []
        with open(self.path, 'r') as f:
            text = f.read()
        if not text.strip():
            return []
        payload = HistorySerializer.from_yaml(text) if self.is_yaml else HistorySerializer.from_json(text)
        return parse_payload(payload, self.version, self.max_games)

    def _write(self, games: List[GameResult]) -> None:
        payload = build_payload(games, self.version)
        text = HistorySerializer.to_yaml(payload) if self.is_yaml else HistorySerializer.to_json(payload)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        with open(tmp_path, 'w') as f:
            f.write(text)
        tmp_path.replace(self.path)

    def load_all(self) -> List[GameResult]:
        """Load stored games, newest first; unreadable history yields []."""
        try:
            return self._read()
        except (OSError, ValueError, KeyError, TypeError, OverflowError, yaml.YAMLError) as exc:
            logger.warning("Could not load game history from %s: %s", self.path, exc)
            return []

    def save(self, result: GameResult) -> bool:
        """Prepend a result and trim to the retention cap."""
        games = [result] + self.load_all()
        try:
            self._write(games[:self.max_games])
        except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
            logger.warning("Could not save game history to %s: %s", self.path, exc)
            return False
        logger.info("Game result %s saved to %s", result.result_id, self.path)
        return True

    def clear(self) -> bool:
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as exc:
            logger.warning("Could not clear game history at %s: %s", self.path, exc)
            return False
        return True

    def is_available(self) -> bool:
        """Whether the history file can be written (nearest existing ancestor is writable)."""
        if self.path.is_dir():
            return False
        if self.path.exists():
            return os.access(self.path, os.W_OK)
        for ancestor in self.path.parents:
            if ancestor.exists():
                return ancestor.is_dir() and os.access(ancestor, os.W_OK)
        return False

    def info(self) -> Dict[str, Any]:
        """
        Storage report for diagnostics.

        Returns:
            Dictionary with availability, stored game count, file size in
            bytes and a rounded ``"N KB"`` estimate
        """
        if not self.is_available():
            return {'is_available': False, 'game_count': 0, 'size_bytes': 0, 'estimated_size': '0 KB'}

        size = self.path.stat().st_size if self.path.is_file() else 0
        return {
            'is_available': True,
            'game_count': len(self.load_all()),
            'size_bytes': size,
            'estimated_size': f"{round(size / 1024)} KB",
        }


@dataclass
class InMemoryHistoryStore:
    """Process-local store for tests and headless runs."""
    max_games: int = 100
    games: List[GameResult] = field(default_factory=list)
    save_count: int = 0

    def save(self, result: GameResult) -> bool:
        self.save_count += 1
        self.games.insert(0, result)
        del self.games[self.max_games:]
        return True

    def load_all(self) -> List[GameResult]:
        return list(self.games)

    def clear(self) -> bool:
        self.games.clear()
        return True
