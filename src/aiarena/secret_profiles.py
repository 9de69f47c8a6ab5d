"""Named API credentials loaded from a user-level YAML file.

Agents pick an entry with ``secret_profile``; the file keeps keys out of
batch configs that get committed or shared. Layout::

    secrets:
      openai:
        work:
          api_key: sk-...
      anthropic:
        default:
          api_key: sk-ant-...
      ollama:
        gpu-box:
          base_url: http://gpu-box:11434

Lookup order for a key: the named profile, then the environment
variable, then the provider's ``default`` profile.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import yaml

from aiarena.config import ConfigurationError

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "anthropic", "ollama")
DEFAULT_PROFILE = "default"
SECRETS_FILENAME = "secrets.yaml"

Profiles = dict[str, dict[str, dict[str, str]]]


def default_secrets_path() -> Path:
    """$XDG_CONFIG_HOME/aiarena/secrets.yaml, or ~/.config/aiarena/secrets.yaml."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "aiarena" / SECRETS_FILENAME


class SecretProfiles:
    """Provider -> profile name -> fields (``api_key``, ``base_url``)."""

    def __init__(self, profiles: Profiles | None = None, path: Path | None = None):
        self.path = path
        self._profiles: Profiles = profiles or {}

    @classmethod
    def load(cls, path: Path | None = None) -> SecretProfiles:
        """Read the secrets file.

        A missing file at the default location gives an empty set; a missing
        file that was asked for by name is an error.
        """
        explicit = path is not None
        path = Path(path) if explicit else default_secrets_path()
        if not path.exists():
            if explicit:
                raise ConfigurationError(f"Secrets file not found: {path}")
            logger.debug("No secrets file at %s", path)
            return cls(path=path)

        mode = path.stat().st_mode
        if mode & stat.S_IRWXO:
            logger.warning(
                "Secrets file %s is accessible by other users (mode %o); "
                "run: chmod 600 %s", path, stat.S_IMODE(mode), path,
            )

        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"{path}: invalid YAML: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"{path}: expected a mapping at the top level")
        raw = raw.get("secrets", raw)
        profiles: Profiles = {}
        for provider, entries in (raw or {}).items():
            if provider not in PROVIDERS:
                logger.warning("%s: ignoring unknown provider %r", path, provider)
                continue
            if not isinstance(entries, dict) or not all(
                isinstance(v, dict) for v in entries.values()
            ):
                raise ConfigurationError(
                    f"{path}: '{provider}' must map profile names to fields"
                )
            profiles[provider] = {
                str(name): {k: str(v) for k, v in fields.items() if v is not None}
                for name, fields in entries.items()
            }
        logger.debug(
            "Loaded secret profiles from %s: %s",
            path, {p: sorted(e) for p, e in profiles.items()},
        )
        return cls(profiles, path=path)

    def names(self, provider: str) -> list[str]:
        return sorted(self._profiles.get(provider, {}))

    def get(self, provider: str, profile: str) -> dict[str, str]:
        try:
            return self._profiles[provider][profile]
        except KeyError:
            raise ConfigurationError(
                f"{provider} secret profile {profile!r} not found in "
                f"{self.path or 'secrets file'}. Defined: {self.names(provider)}"
            ) from None

    def _default(self, provider: str) -> dict[str, str]:
        return self._profiles.get(provider, {}).get(DEFAULT_PROFILE, {})

    def api_key(
        self,
        provider: str,
        profile: str | None = None,
        env_var: str | None = None,
        required: bool = True,
    ) -> str | None:
        if profile:
            key = self.get(provider, profile).get("api_key")
            if key or not required:
                return key
            raise ConfigurationError(
                f"{provider} secret profile {profile!r} has no api_key"
            )
        if env_var and os.environ.get(env_var):
            return os.environ[env_var]
        key = self._default(provider).get("api_key")
        if key or not required:
            return key
        raise ConfigurationError(
            f"environment variable {env_var} not set and no "
            f"{DEFAULT_PROFILE!r} {provider} secret profile"
        )

    def base_url(
        self,
        provider: str,
        profile: str | None = None,
        env_var: str | None = None,
    ) -> str | None:
        """Profile, then environment variable, then default profile; else None."""
        if profile:
            url = self.get(provider, profile).get("base_url")
            if url:
                return url
        if env_var and os.environ.get(env_var):
            return os.environ[env_var]
        return self._default(provider).get("base_url")
