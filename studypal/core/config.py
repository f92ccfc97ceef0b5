import yaml
from pathlib import Path
import os
from typing import Any, Dict, Optional, List, Callable
import logging
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileCreatedEvent, FileModifiedEvent
import time
import re

RELOAD_COOLDOWN_SECONDS = 1.0
RELOAD_SETTLE_SECONDS = 0.1

# Whole-value references only: "$NAME" or "${NAME}"
ENV_REFERENCE = re.compile(r"^\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))$")
ENV_LINE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")


def expand_env(value: Any) -> Any:
    """Replace "$NAME"/"${NAME}" strings with the environment value, walking dicts and lists.
    Unset names are left as written."""
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    if isinstance(value, str):
        match = ENV_REFERENCE.match(value)
        if match:
            return os.environ.get(match.group(1) or match.group(2), value)
    return value


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse KEY=VALUE lines; blank lines and # comments are skipped, surrounding quotes dropped."""
    values: Dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = ENV_LINE.match(line)
        if match is None:
            logging.debug(f"Ignoring malformed line in {path}: {line}")
            continue
        key, value = match.groups()
        values[key] = value.strip().strip('"').strip("'")
    return values


def diff_config(old: Dict, new: Dict, prefix: str = "") -> List[str]:
    """Dotted-path descriptions of every added, removed or changed setting."""
    changes = []
    for key in sorted(set(old) | set(new), key=str):
        path = f"{prefix}.{key}" if prefix else str(key)
        if key not in new:
            changes.append(f"removed {path} (was {old[key]!r})")
        elif key not in old:
            changes.append(f"added {path} = {new[key]!r}")
        elif isinstance(old[key], dict) and isinstance(new[key], dict):
            changes.extend(diff_config(old[key], new[key], path))
        elif old[key] != new[key]:
            changes.append(f"changed {path}: {old[key]!r} -> {new[key]!r}")
    return changes


class ConfigFileWatcher(FileSystemEventHandler):
    """Reloads the Config when its own file is written; bursts of events collapse into one reload."""

    def __init__(self, config: "Config"):
        self.config = config
        self._last_reload = 0.0

    def on_any_event(self, event):
        if not isinstance(event, (FileModifiedEvent, FileCreatedEvent)):
            return
        if Path(event.src_path).resolve() != self.config.config_file:
            return
        now = time.monotonic()
        if now - self._last_reload < RELOAD_COOLDOWN_SECONDS:
            return
        self._last_reload = now
        try:
            self.config.reload()
        except Exception as e:
            logging.error(f"Config watcher failed to reload {event.src_path}: {e}")


class Config:
    def __init__(self, config_path: Optional[str] = None, watch: Optional[bool] = None):
        self.change_callbacks: List[Callable] = []
        self._reloading = False
        self.observer: Optional[Observer] = None

        if config_path:
            self.config_file = Path(config_path).expanduser().resolve()
        else:
            self.config_file = (Path.cwd() / "config.yaml").resolve()
        self.config_dir = self.config_file.parent
        logging.debug(f"Config file: {self.config_file}")

        self._load_env_file()
        self._ensure_config_exists()
        self.data: Dict[str, Any] = self._get_default_config()
        self._load_config()

        if watch is None:
            watch = bool(self.data.get("watch_config", False))
        if watch:
            self._start_watching()

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Return data[section][key], or default when either level is missing."""
        section_data = self.data.get(section) or {}
        if not isinstance(section_data, dict):
            return default
        return section_data.get(key, default)

    def register_change_callback(self, callback: Callable) -> None:
        """callback(data) runs after every successful reload."""
        self.change_callbacks.append(callback)

    def reload(self) -> None:
        """Re-read the file, log what changed and notify callbacks. Re-entrant calls are ignored."""
        if self._reloading:
            return
        self._reloading = True
        try:
            # editors may still be flushing the file
            time.sleep(RELOAD_SETTLE_SECONDS)
            previous = self.data
            self._load_config()
            if self.data is previous:
                return

            changes = diff_config(previous, self.data)
            if changes:
                logging.info(f"Config reloaded from {self.config_file} with {len(changes)} change(s)")
                for change in changes:
                    logging.info(f"  {change}")
            else:
                logging.info(f"Config reloaded from {self.config_file}; nothing changed")

            for callback in self.change_callbacks:
                try:
                    callback(self.data)
                except Exception:
                    logging.exception(f"Config change callback {callback!r} failed")
        finally:
            self._reloading = False

    def cleanup(self) -> None:
        """Stop watching the config file."""
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    def _start_watching(self) -> None:
        self.observer = Observer()
        self.observer.schedule(ConfigFileWatcher(self), str(self.config_dir), recursive=False)
        self.observer.start()
        logging.info(f"Watching {self.config_file} for changes")

    def _get_default_config(self) -> Dict[str, Any]:
        return {
            "api": {
                "host": "127.0.0.1",
                "port": 8765,
                "cors_origins": ["http://localhost:3000", "http://127.0.0.1:3000"],
            },
            "database": {
                "path": "~/.studypal/studypal.db",
            },
            "auth": {
                "session_days": 30,
            },
            "stats": {
                "window_days": 30,
            },
            "logging": {
                "level": "INFO",
                "file": str(self.config_dir / "studypal.log"),
            },
            "watch_config": False,
        }

    def _ensure_config_exists(self) -> None:
        if self.config_file.exists():
            return
        self.config_dir.mkdir(parents=True, exist_ok=True)
        logging.info(f"No config at {self.config_file}; writing defaults")
        self.config_file.write_text(yaml.dump(self._get_default_config(), sort_keys=False))

    def _load_env_file(self) -> None:
        """Export the first .env found next to the config, one level up, or in cwd. Existing variables win."""
        for candidate in (self.config_dir / ".env", self.config_dir.parent / ".env", Path.cwd() / ".env"):
            if candidate.is_file():
                break
        else:
            return

        try:
            values = read_env_file(candidate)
        except OSError as e:
            logging.warning(f"Could not read {candidate}: {e}")
            return
        for key, value in values.items():
            os.environ.setdefault(key, value)
        logging.info(f"Loaded {len(values)} variable(s) from {candidate}")

    def _load_config(self) -> None:
        """Replace self.data from the file; on any error the current data is kept."""
        try:
            with open(self.config_file) as f:
                loaded = yaml.safe_load(f)
            if not isinstance(loaded, dict):
                raise ValueError("top level must be a mapping")
        except Exception as e:
            logging.error(f"Ignoring config {self.config_file}: {e}")
            return

        loaded = expand_env(loaded)
        for section, value in self._get_default_config().items():
            loaded.setdefault(section, value)
        log_section = loaded.get("logging")
        if isinstance(log_section, dict) and log_section.get("file"):
            log_section["file"] = os.path.expanduser(log_section["file"])
        self.data = loaded
