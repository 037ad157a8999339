"""API browser endpoints.

Provides endpoints for:
- Rendering the current controller/site/action selection with its data
- Submitting controller credentials through the login form
- Listing the available data collections (actions)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from unifi_stats.config import settings
from unifi_stats.database import get_db
from unifi_stats.exceptions import ControllerConfigurationError
from unifi_stats.schemas import (
    ActionInfo,
    BrowserView,
    LoginForm,
    SelectionRequest,
    UsageFilter,
)
from unifi_stats.services.actions import ACTIONS
from unifi_stats.services.browser_service import BrowserService
from unifi_stats.services.controller_client import ClientFactory, build_client_factory
from unifi_stats.services.registry import Registry, default_profile, load_registry
from unifi_stats.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/browser", tags=["Browser"])


def get_registry() -> Optional[Registry]:
    """Dependency that provides the configured controller registry (None = single mode)."""
    try:
        return load_registry(settings.CONTROLLERS_FILE)
    except ControllerConfigurationError as e:
        logger.error("%s", e)
        raise HTTPException(
            status_code=503,
            detail="The controllers file is invalid. Please check the service configuration.",
        )


def get_client_factory() -> ClientFactory:
    """Dependency that provides the controller client factory."""
    return build_client_factory(settings)


def selection_params(
    controller_id: Optional[str] = Query(None, description="Controller to switch to"),
    site_id: Optional[str] = Query(None, description="Site machine name"),
    site_name: Optional[str] = Query(None, description="Site display name"),
    action: Optional[str] = Query(None, description="Data collection to fetch"),
    output_format: Optional[str] = Query(
        None, description="json, json_color, pformat, repr or var_dump"
    ),
    theme: Optional[str] = Query(None, description="UI theme name"),
) -> SelectionRequest:
    return SelectionRequest(
        controller_id=controller_id,
        site_id=site_id,
        site_name=site_name,
        action=action,
        output_format=output_format,
        theme=theme,
    )


def usage_params(
    from_d: Optional[str] = Query(None, description="Range start day"),
    from_m: Optional[str] = Query(None, description="Range start month"),
    from_y: Optional[str] = Query(None, description="Range start year"),
    to_d: Optional[str] = Query(None, description="Range end day"),
    to_m: Optional[str] = Query(None, description="Range end month"),
    to_y: Optional[str] = Query(None, description="Range end year"),
    days: Optional[str] = Query(None, description="Trailing window in days (default 30)"),
) -> UsageFilter:
    return UsageFilter(
        from_d=from_d,
        from_m=from_m,
        from_y=from_y,
        to_d=to_d,
        to_m=to_m,
        to_y=to_y,
        days=days,
    )


def _session_id(request: Request) -> str:
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not session_id or len(session_id) > 64:
        session_id = uuid.uuid4().hex
    return session_id


def _browse_path(request: Request) -> str:
    return str(request.app.url_path_for("browse"))


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        session_id,
        max_age=settings.COOKIE_TIMEOUT,
        httponly=True,
        samesite="lax",
    )


def _browse(
    request: Request,
    response: Response,
    db: Session,
    registry: Optional[Registry],
    client_factory: ClientFactory,
    selection: SelectionRequest,
    usage_filter: UsageFilter,
    reset_session: bool,
    login_form: Optional[LoginForm] = None,
):
    session_id = _session_id(request)
    store = SessionStore(db, settings.COOKIE_TIMEOUT)
    now = datetime.now(timezone.utc)

    if reset_session:
        state = store.reset(session_id)
        state.last_activity = now.timestamp()
        store.save(session_id, state)
        redirect = RedirectResponse(url=_browse_path(request), status_code=302)
        _set_session_cookie(redirect, session_id)
        return redirect

    state = store.load(session_id, now)
    service = BrowserService(settings, registry, default_profile(settings), client_factory)
    try:
        view = service.handle(
            state,
            selection,
            now,
            login_form=login_form,
            usage_filter=usage_filter,
        )
    except ControllerConfigurationError as e:
        logger.warning("Controller configuration error, resetting session: %s", e)
        redirect = RedirectResponse(
            url=f"{_browse_path(request)}?reset_session=true", status_code=302
        )
        _set_session_cookie(redirect, session_id)
        return redirect

    store.save(session_id, state)
    _set_session_cookie(response, session_id)
    return view


@router.get(
    "",
    response_model=BrowserView,
    summary="Browse the selected data collection",
    description=(
        "Resolves the controller, site and action from the query string (falling "
        "back to the values remembered in the session), logs in to the controller "
        "when needed and returns the selected data collection. For the daily site "
        "statistics a usage report is included, filtered by an explicit date range "
        "(from_*/to_*) or a trailing window of `days`."
    ),
)
def browse(
    request: Request,
    response: Response,
    reset_session: bool = Query(False, description="Discard the session and start over"),
    selection: SelectionRequest = Depends(selection_params),
    usage_filter: UsageFilter = Depends(usage_params),
    db: Session = Depends(get_db),
    registry: Optional[Registry] = Depends(get_registry),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Render the current selection for this browser session."""
    return _browse(
        request,
        response,
        db,
        registry,
        client_factory,
        selection,
        usage_filter,
        reset_session,
    )


@router.post(
    "/login",
    response_model=BrowserView,
    summary="Submit controller credentials",
    description=(
        "Applies the non-empty login form fields to the current controller "
        "profile of this session, then behaves like GET /api/v1/browser."
    ),
)
def login(
    request: Request,
    response: Response,
    controller_user: str = Form("", description="Controller username"),
    controller_password: str = Form("", description="Controller password"),
    controller_url: str = Form("", description="Controller URL"),
    selection: SelectionRequest = Depends(selection_params),
    usage_filter: UsageFilter = Depends(usage_params),
    db: Session = Depends(get_db),
    registry: Optional[Registry] = Depends(get_registry),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Log in to the controller with the submitted credentials."""
    form = LoginForm(
        controller_user=controller_user,
        controller_password=controller_password,
        controller_url=controller_url,
    )
    return _browse(
        request,
        response,
        db,
        registry,
        client_factory,
        selection,
        usage_filter,
        reset_session=False,
        login_form=form,
    )


@router.get(
    "/actions",
    response_model=List[ActionInfo],
    summary="List available data collections",
)
def list_actions() -> List[ActionInfo]:
    """Return every supported action id with its label."""
    return [ActionInfo(id=key, label=action.label) for key, action in ACTIONS.items()]
