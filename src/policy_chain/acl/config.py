"""Declarative ACL configuration.

The raw document is a mapping with three layers::

    {
        "*": True,                            # global default
        "ProfileController": {
            "*": False,                       # controller default
            "edit": "isLoggedIn",             # action override
        },
        "FileController": {
            "upload": ["isAuthenticated", "canWrite", "hasEnoughSpace"],
        },
    }

Entry values are ``True`` (allow), ``False`` (deny), a policy name, or a
non-empty list of those.  Anything else is rejected with
:class:`~policy_chain.core.errors.InvalidPolicySpecError` at parse time,
so a bad document fails at startup rather than per request.
"""
from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from policy_chain.core.errors import ConfigFileError, InvalidPolicySpecError
from policy_chain.core.types import (
    ALLOW,
    DENY,
    WILDCARD,
    ActionName,
    Allow,
    ControllerName,
    Deny,
    Named,
    PolicyName,
    PolicySequence,
    PolicySpec,
)

_SPEC_TYPES = (Allow, Deny, Named, PolicySequence)


# ---------------------------------------------------------------------------
# Entry parsing
# ---------------------------------------------------------------------------

def parse_policy_spec(value: Any, *, where: str = "") -> PolicySpec:
    """Convert one raw ACL entry into a :data:`PolicySpec`.

    Parameters
    ----------
    value:
        ``bool``, ``str``, a list/tuple of those, or an existing spec.
    where:
        Location of the entry, used in error details.

    Raises
    ------
    InvalidPolicySpecError
        For empty lists, nested lists and unsupported value types.
    """
    if isinstance(value, _SPEC_TYPES):
        return value
    if isinstance(value, (list, tuple)):
        if not value:
            raise InvalidPolicySpecError(
                f"Empty policy list at {where or '<entry>'}",
                details={"where": where},
            )
        items = []
        for item in value:
            if isinstance(item, (list, tuple, PolicySequence)):
                raise InvalidPolicySpecError(
                    f"Nested policy list at {where or '<entry>'}",
                    details={"where": where},
                )
            items.append(_parse_single(item, where))
        return PolicySequence(tuple(items))
    return _parse_single(value, where)


def _parse_single(value: Any, where: str) -> Allow | Deny | Named:
    if isinstance(value, (Allow, Deny, Named)):
        return value
    if isinstance(value, bool):
        return ALLOW if value else DENY
    if isinstance(value, str):
        if not value:
            raise InvalidPolicySpecError(
                f"Empty policy name at {where or '<entry>'}",
                details={"where": where},
            )
        return Named(PolicyName(value))
    raise InvalidPolicySpecError(
        f"Unsupported policy value of type {type(value).__name__} "
        f"at {where or '<entry>'}",
        details={"where": where, "type": type(value).__name__},
    )


def render_policy_spec(spec: PolicySpec) -> bool | str | list[bool | str]:
    """Inverse of :func:`parse_policy_spec`."""
    if isinstance(spec, PolicySequence):
        return [_render_single(item) for item in spec.items]
    return _render_single(spec)


def _render_single(spec: Allow | Deny | Named) -> bool | str:
    if isinstance(spec, Allow):
        return True
    if isinstance(spec, Deny):
        return False
    return str(spec.name)


# ---------------------------------------------------------------------------
# ACL configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ACLConfig:
    """Parsed, read-only three-layer ACL.

    Attributes
    ----------
    global_default:
        The top-level ``'*'`` entry, or ``None`` when the document has
        none (the engine then applies its implicit default).
    controller_defaults:
        Controller -> that controller's ``'*'`` entry.
    action_overrides:
        ``(controller, action)`` -> entry.
    """

    global_default: PolicySpec | None = None
    controller_defaults: Mapping[ControllerName, PolicySpec] = field(default_factory=dict)
    action_overrides: Mapping[tuple[ControllerName, ActionName], PolicySpec] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.global_default is not None and not isinstance(self.global_default, _SPEC_TYPES):
            raise InvalidPolicySpecError(
                "global_default must be a policy spec",
                details={"type": type(self.global_default).__name__},
            )
        for key, spec in (*self.controller_defaults.items(), *self.action_overrides.items()):
            if not isinstance(spec, _SPEC_TYPES):
                raise InvalidPolicySpecError(
                    f"Entry {key!r} is not a policy spec",
                    details={"key": repr(key), "type": type(spec).__name__},
                )
        object.__setattr__(
            self, "controller_defaults", MappingProxyType(dict(self.controller_defaults))
        )
        object.__setattr__(
            self, "action_overrides", MappingProxyType(dict(self.action_overrides))
        )

    # -- construction -------------------------------------------------------

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ACLConfig:
        """Parse a raw ACL document.

        Raises
        ------
        InvalidPolicySpecError
            If the document or any entry has the wrong shape.
        """
        if not isinstance(raw, Mapping):
            raise InvalidPolicySpecError(
                "ACL configuration must be a mapping",
                details={"type": type(raw).__name__},
            )

        global_default: PolicySpec | None = None
        controllers: dict[ControllerName, PolicySpec] = {}
        actions: dict[tuple[ControllerName, ActionName], PolicySpec] = {}

        for key, value in raw.items():
            _check_key(key, "<root>")
            if key == WILDCARD:
                global_default = parse_policy_spec(value, where="'*'")
                continue
            if not isinstance(value, Mapping):
                raise InvalidPolicySpecError(
                    f"Controller entry '{key}' must be a mapping of actions",
                    details={"controller": key, "type": type(value).__name__},
                )
            controller = ControllerName(key)
            for action_key, entry in value.items():
                _check_key(action_key, key)
                where = f"{key}.{action_key}"
                if action_key == WILDCARD:
                    controllers[controller] = parse_policy_spec(entry, where=where)
                else:
                    actions[(controller, ActionName(action_key))] = parse_policy_spec(
                        entry, where=where
                    )

        return cls(
            global_default=global_default,
            controller_defaults=controllers,
            action_overrides=actions,
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> ACLConfig:
        """Parse a JSON-encoded ACL document."""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigFileError(f"Invalid JSON in ACL configuration: {exc}") from exc
        return cls.from_mapping(raw)

    # -- export / introspection --------------------------------------------

    def to_mapping(self) -> dict[str, Any]:
        """Render back to the raw document shape."""
        out: dict[str, Any] = {}
        if self.global_default is not None:
            out[WILDCARD] = render_policy_spec(self.global_default)
        for controller, spec in self.controller_defaults.items():
            out.setdefault(controller, {})[WILDCARD] = render_policy_spec(spec)
        for (controller, action), spec in self.action_overrides.items():
            out.setdefault(controller, {})[action] = render_policy_spec(spec)
        return out

    def specs(self) -> Iterator[PolicySpec]:
        """Yield every explicitly configured spec."""
        if self.global_default is not None:
            yield self.global_default
        yield from self.controller_defaults.values()
        yield from self.action_overrides.values()

    def policy_names(self) -> set[PolicyName]:
        """All policy names referenced anywhere in the ACL."""
        names: set[PolicyName] = set()
        for spec in self.specs():
            items = spec.items if isinstance(spec, PolicySequence) else (spec,)
            names.update(item.name for item in items if isinstance(item, Named))
        return names

    @property
    def controllers(self) -> set[ControllerName]:
        """Every controller that has a default or an override."""
        return set(self.controller_defaults) | {c for c, _ in self.action_overrides}


def _check_key(key: Any, parent: str) -> None:
    if not isinstance(key, str) or not key:
        raise InvalidPolicySpecError(
            f"ACL keys must be non-empty strings (under {parent})",
            details={"parent": parent, "key": repr(key)},
        )


def load_acl_config(path: str | Path) -> ACLConfig:
    """Read and parse a JSON ACL document from *path*.

    Raises
    ------
    ConfigFileError
        If the file cannot be read or is not valid JSON.
    InvalidPolicySpecError
        If the document has the wrong shape.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigFileError(
            f"Cannot read ACL configuration: {path}",
            details={"path": str(path)},
        ) from exc
    return ACLConfig.from_json(text)
