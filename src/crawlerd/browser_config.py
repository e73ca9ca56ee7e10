"""
Browser configuration for the Playwright page-automation provider.

Validated Pydantic model for launch and context settings shared by every
site handler in a worker process.
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BrowserConfig(BaseModel):
    """
    Configuration for BrowserProvider.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    model_config = ConfigDict(validate_assignment=True)

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to launch"
    )

    device: Optional[str] = Field(
        default="Desktop Chrome",
        description="Playwright device descriptor used for context defaults"
    )

    viewport_width: int = Field(default=1366, ge=320, le=7680)
    viewport_height: int = Field(default=900, ge=240, le=4320)

    locale: str = Field(default="en-US")
    timezone_id: str = Field(default="America/New_York")

    user_agent: Optional[str] = Field(
        default=None,
        description="User agent override; the device default is used when None"
    )

    proxy_server: Optional[str] = Field(default=None)
    proxy_username: Optional[str] = Field(default=None)
    proxy_password: Optional[str] = Field(default=None)

    navigation_timeout: int = Field(
        default=30000,
        description="Page navigation timeout in milliseconds",
        ge=1000,
        le=300000
    )

    default_timeout: int = Field(
        default=10000,
        description="Timeout for locator and other page operations in milliseconds",
        ge=100,
        le=300000
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments"
    )

    @classmethod
    def from_config(cls, config) -> "BrowserConfig":
        """Build from the process Config (env-derived settings)."""
        return cls(
            headless=config.headless,
            locale=config.locale,
            timezone_id=config.timezone_id,
            user_agent=config.user_agent,
            proxy_server=config.proxy_server,
            proxy_username=config.proxy_username,
            proxy_password=config.proxy_password,
        )

    def launch_options(self) -> Dict:
        """Keyword arguments for ``browser_type.launch()``.

        The proxy key is omitted entirely unless a server is configured.
        """
        options: Dict = {"headless": self.headless}
        if self.launch_args:
            options["args"] = self.launch_args
        if self.proxy_server:
            proxy = {"server": self.proxy_server}
            if self.proxy_username:
                proxy["username"] = self.proxy_username
            if self.proxy_password:
                proxy["password"] = self.proxy_password
            options["proxy"] = proxy
        return options
