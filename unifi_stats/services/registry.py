"""Controller registry: which controller and credentials a session talks to.

The registry is an optional JSON file mapping a controller id to its
profile::

    {
        "home": {"name": "Home", "url": "https://10.0.0.2:8443",
                 "user": "admin", "password": "secret"},
        "office": {"name": "Office", "url": "https://unifi.example.com"}
    }

Without a registry the service runs in single-controller mode, using the
``CONTROLLER_*`` settings as the one implicit profile.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import TypeAdapter, ValidationError

from unifi_stats.config import Settings
from unifi_stats.exceptions import ControllerConfigurationError
from unifi_stats.schemas import ControllerProfile, LoginForm, SessionState

logger = logging.getLogger(__name__)

Registry = Dict[str, ControllerProfile]

_registry_adapter = TypeAdapter(Dict[str, ControllerProfile])


def load_registry(path: Optional[str]) -> Optional[Registry]:
    """Load the controller registry from a JSON file.

    Args:
        path: Location of the registry file, or None for single-controller mode.

    Returns:
        Mapping of controller id to profile, or None when no registry is configured.

    Raises:
        ControllerConfigurationError: If the file exists but cannot be parsed.
    """
    if not path:
        return None
    registry_path = Path(path)
    if not registry_path.is_file():
        logger.warning("Controllers file not found: %s", registry_path)
        return None
    try:
        raw = json.loads(registry_path.read_text(encoding="utf-8"))
        profiles = _registry_adapter.validate_python(raw)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ControllerConfigurationError(
            f"Invalid controllers file '{registry_path}': {e}"
        ) from e
    return {
        key: profile.model_copy(update={"id": key}) for key, profile in profiles.items()
    }


def default_profile(config: Settings) -> ControllerProfile:
    """Build the implicit single-controller profile from settings."""
    return ControllerProfile(
        name=config.CONTROLLER_NAME,
        url=config.CONTROLLER_URL,
        user=config.CONTROLLER_USER,
        password=config.CONTROLLER_PASSWORD,
    )


def resolve_controller(
    state: SessionState,
    registry: Optional[Registry],
    requested_id: Optional[str],
    fallback: ControllerProfile,
) -> Optional[ControllerProfile]:
    """Resolve the controller profile for this request and record it in the session.

    Order: explicit selector, then the profile remembered in the session, then
    (single-controller mode only) the implicit profile.

    Args:
        state: Session state, updated in place.
        registry: Configured controllers, or None in single-controller mode.
        requested_id: Controller id from the request, if any.
        fallback: The implicit single-controller profile.

    Returns:
        The active profile, or None when a registry exists and nothing is selected.

    Raises:
        ControllerConfigurationError: If a selector is given that cannot be honored.
    """
    if requested_id is not None:
        if registry is None:
            raise ControllerConfigurationError(
                "A controller was requested but no controllers are configured."
            )
        if requested_id not in registry:
            raise ControllerConfigurationError(
                f"Unknown controller id '{requested_id}'."
            )
        logger.info("Switching to controller '%s'", requested_id)
        state.select_controller(requested_id, registry[requested_id])
        return state.controller

    if registry is not None:
        return state.controller

    if state.controller is None:
        state.controller = fallback.model_copy()
    return state.controller


def apply_login_overrides(state: SessionState, form: Optional[LoginForm]) -> None:
    """Apply non-empty login form values to the session's current profile only."""
    if form is None or state.controller is None:
        return
    updates = {}
    if form.controller_user:
        updates["user"] = form.controller_user
    if form.controller_password:
        updates["password"] = form.controller_password
    if form.controller_url:
        updates["url"] = form.controller_url
    if updates:
        state.controller = state.controller.model_copy(update=updates)
