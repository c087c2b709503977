"""Configuration loading and merging for consulreg."""

from pathlib import Path

import yaml

from .registration import YAML_KEYS, RegistrationConfigError, ServiceRegistration


def load_registration_data(path: str | Path) -> dict:
    """Read registration settings from a YAML file.

    Keys use the YAML names (``id``, ``name``, ``healthUrl``, ``consulUrl``,
    ``skipSsl`` ...).  Unknown keys are dropped.
    """
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise RegistrationConfigError(f"{path}: expected a mapping at the top level")
    # Registration state is never read from a file
    known = set(YAML_KEYS.values()) - {"registered"}
    return {k: v for k, v in data.items() if k in known}


def merge_cli_args(data: dict, args) -> dict:
    """Overlay CLI arguments onto registration settings. CLI values take precedence."""
    for name, key in YAML_KEYS.items():
        if name == "registered":
            continue
        cli_val = getattr(args, name, None)
        if cli_val is not None:
            data[key] = cli_val
    return data


def _to_registration(data: dict, source: str) -> ServiceRegistration:
    try:
        return ServiceRegistration.from_dict(data)
    except RegistrationConfigError as e:
        raise RegistrationConfigError(f"{source}: {e}") from e


def load_registration(path: str | Path) -> ServiceRegistration:
    """Load a ServiceRegistration from a YAML file."""
    return _to_registration(load_registration_data(path), str(path))


def build_registration(args) -> ServiceRegistration:
    """Build a ServiceRegistration from an optional config file + CLI overrides."""
    data = load_registration_data(args.config) if getattr(args, "config", None) else {}
    merge_cli_args(data, args)
    return _to_registration(data, args.config or "command line")


def registration_to_yaml(registration: ServiceRegistration) -> str:
    """Serialize a ServiceRegistration using the YAML key names."""
    data = registration.to_dict()
    data.pop("registered")
    return yaml.dump(data, default_flow_style=False, sort_keys=False)
