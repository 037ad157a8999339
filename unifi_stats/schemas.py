"""Pydantic schemas for session state, usage reports and API responses."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

UNDETECTED_VERSION = "undetected"


class ControllerProfile(BaseModel):
    """Endpoint and credentials for one UniFi controller."""

    id: Optional[str] = Field(None, description="Registry key (None in single-controller mode)")
    name: str = Field("Controller", description="Display name")
    url: str = Field("", description="Base URL, e.g. https://unifi.example.com:8443")
    user: str = Field("", description="Controller username")
    password: str = Field("", description="Controller password")

    def credentials_complete(self) -> bool:
        """True when user, password and URL are all non-empty."""
        return bool(self.user and self.password and self.url)


class LoginForm(BaseModel):
    """Values submitted through the login form; empty fields are ignored."""

    controller_user: str = ""
    controller_password: str = ""
    controller_url: str = ""


class Site(BaseModel):
    """A site managed by the controller."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="Machine name used to scope API calls")
    desc: str = Field("", description="Human-readable description")


class SessionState(BaseModel):
    """Selection state and cached remote results for one browser session.

    The ``sites``, ``detected_controller_version`` and ``auth_cookie`` caches
    belong to the currently selected controller only.
    """

    controller_id: Optional[str] = None
    controller: Optional[ControllerProfile] = None
    site_id: str = ""
    site_name: str = ""
    action: str = ""
    output_format: Optional[str] = None
    theme: Optional[str] = None
    sites: Optional[List[Dict[str, Any]]] = None
    detected_controller_version: Optional[str] = None
    auth_cookie: Optional[str] = None
    last_activity: Optional[float] = None

    def select_controller(self, controller_id: str, profile: ControllerProfile) -> None:
        """Switch to another controller, dropping everything tied to the previous one."""
        self.controller_id = controller_id
        self.controller = profile.model_copy()
        self.site_id = ""
        self.site_name = ""
        self.sites = None
        self.action = ""
        self.detected_controller_version = None
        self.auth_cookie = None


class SelectionRequest(BaseModel):
    """Selection parameters taken from the query string (None = not supplied)."""

    controller_id: Optional[str] = None
    site_id: Optional[str] = None
    site_name: Optional[str] = None
    action: Optional[str] = None
    output_format: Optional[str] = None
    theme: Optional[str] = None


class UsageFilter(BaseModel):
    """Raw usage-report filter fields as submitted by the user."""

    from_d: Optional[str] = None
    from_m: Optional[str] = None
    from_y: Optional[str] = None
    to_d: Optional[str] = None
    to_m: Optional[str] = None
    to_y: Optional[str] = None
    days: Optional[str] = None


class UsageLine(BaseModel):
    """Traffic for a single day of the daily site report."""

    date: str = Field(..., description="Calendar date of the sample (d/m/yyyy)")
    days_ago: int = Field(..., description="Whole days between the sample date and today")
    upload_gb: float = Field(..., description="Uploaded data in GB")
    download_gb: float = Field(..., description="Downloaded data in GB")
    total_gb: float = Field(..., description="Upload + download in GB")


class UsageReport(BaseModel):
    """Filtered, totalled usage built from a daily site report."""

    caption: str = Field(..., description="Human-readable description of the filter")
    total_gb: float = Field(..., description="Grand total over all lines in GB")
    lines: List[UsageLine] = Field(default_factory=list)


class ActionInfo(BaseModel):
    """One entry of the action catalogue."""

    id: str
    label: str


class ControllerOption(BaseModel):
    """A configured controller as offered in the controller picker."""

    id: str
    name: str


class RequestTiming(BaseModel):
    """Wall-clock breakdown of the request."""

    login_seconds: float = 0.0
    load_seconds: float = 0.0
    total_seconds: float = 0.0


class BrowserView(BaseModel):
    """Everything the front end needs to render the current selection."""

    alert_message: Optional[str] = None
    show_login: bool = False
    missing_credentials: List[str] = Field(default_factory=list)
    controllers: List[ControllerOption] = Field(default_factory=list)
    controller_id: Optional[str] = None
    controller_name: Optional[str] = None
    controller_user: Optional[str] = None
    controller_url: Optional[str] = None
    controller_version: Optional[str] = None
    sites: List[Site] = Field(default_factory=list)
    site_id: str = ""
    site_name: str = ""
    action: str = ""
    selection: str = ""
    objects_count: Optional[int] = None
    output_format: str = "json"
    theme: str = "bootstrap"
    output: Optional[str] = None
    usage: Optional[UsageReport] = None
    timing: RequestTiming = Field(default_factory=RequestTiming)
    app_version: str = ""


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(..., description="Error message")
