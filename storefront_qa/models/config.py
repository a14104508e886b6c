"""Configuration models for storefront runs."""

from __future__ import annotations

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_OVERLAY_SELECTORS = (
    "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[3]/div",
    ".up_artwork_modal.active",
    ".modal--.active",
    ".modal--up_artwork_modal.active",
    "[class*=\"modal-- up_artwork_modal\"]",
    "[class*=\"modal\"] .active",
)


def _resolve_env_reference(value: str) -> str:
    if isinstance(value, str) and value.startswith("env:"):
        env_var = value[4:]
        resolved = os.environ.get(env_var)
        if resolved is None:
            raise ValueError(f"Environment variable '{env_var}' not set")
        return resolved
    return value


class RetryPolicy(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    attempt_timeout_ms: int = 3000
    backoff_ms: int = 500
    backoff: Literal["linear", "exponential"] = "linear"

    def delay_for(self, attempt: int) -> int:
        """Backoff to wait after failed attempt number ``attempt`` (1-based)."""
        if self.backoff == "exponential":
            return self.backoff_ms * 2 ** (attempt - 1)
        return self.backoff_ms * attempt


class OverlayPolicy(BaseModel):
    selectors: list[str] = Field(default_factory=lambda: list(DEFAULT_OVERLAY_SELECTORS))
    poll_interval_ms: int = 150
    timeout_ms: int = 2000


class Credentials(BaseModel):
    email: str
    password: str

    @field_validator("email", "password", mode="before")
    @classmethod
    def resolve_env(cls, v: str) -> str:
        return _resolve_env_reference(v)


class LoginSelectors(BaseModel):
    login_icon: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[1]/div/div/div[2]/ul/li[2]/div/div/a"
    dropdown_menu: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[1]/div/div/div[2]/ul/li[2]/div/div[2]"
    sign_in_button: str = (
        "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[1]/div/div/div[2]/ul/li[2]/div/div[2]/ul/li[1]/button"
    )
    login_modal: str = "xpath=//*[@id=\"#modal\"]/div/div"
    email_field: str = "xpath=//*[@id=\"#modal\"]/div/div/div[2]/div/form/div[1]/div/input"
    password_field: str = "xpath=//*[@id=\"#modal\"]/div/div/div[2]/div/form/div[2]/div/input"
    submit_button: str = "xpath=//*[@id=\"#modal\"]/div/div/div[2]/div/form/div[4]/button"
    error_message: str = "xpath=//*[@id=\"#modal\"]/div/div/div[2]/div/form/p"


class ProductPageSelectors(BaseModel):
    product_details: str = "#product_details"
    price: str = "xpath=//*[@id=\"product_details\"]/div[1]/aside/div[3]/div[1]/h2"
    combo_info: str = "xpath=//*[@id=\"product_details\"]/div[1]/aside/div[2]"
    add_to_cart: str = "xpath=//*[@id=\"product_details\"]/div[1]/aside/div[3]/div[2]/button[1]"
    see_more: str = (
        "xpath=//*[@id=\"product_details\"]/div[1]/aside/div[1]//li[contains(@class,\"see_more\")]"
        " | //*[@id=\"product_details\"]/div[1]/aside/div[1]//a[contains(text(),\"See More\")]"
    )
    selected_items: str = "#product_details [class*=\"selected\"]"
    upload_modal: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[3]/div"
    artwork_input: str = "xpath=//*[@id=\"artwork_input_file\"]"
    special_instruction: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[3]/div/div[2]/div[1]/textarea"
    continue_button: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[3]/div/div[2]/div[2]/div/button"
    cart_close: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[1]/div/div/div[2]/ul/li[3]/div/a"
    cart_icon: str = "[class*=\"cart\"]"
    cart_count: str = "text=/View Cart \\(\\d+\\)/"
    success_indicators: list[str] = Field(default_factory=lambda: [
        "text=Added to cart",
        "text=Item added",
        "[class*=\"success\"]",
        "[class*=\"notification\"]",
    ])
    section_by_title: str = (
        "xpath=//h4[contains(@class,\"section_title\") and normalize-space(text())=\"{title}\"]"
        "/following-sibling::div[contains(@class,\"switcher_con\")]"
    )


class CheckoutSelectors(BaseModel):
    cart_button: str = "xpath=//*[@id=\"__layout\"]/div/div[1]/header/div[1]/div/div/div[2]/ul/li[3]/div/a"
    cart_markers: str = "text=Cart"
    checkout_buttons: list[str] = Field(default_factory=lambda: [
        "button:has-text(\"CHECKOUT\")",
        "button:has-text(\"Checkout\")",
        "a:has-text(\"CHECKOUT\")",
        "a:has-text(\"Checkout\")",
        "button.checkout",
        "a[href*=\"/checkout\"]",
    ])
    checkout_markers: str = "form[action*=\"/checkout\"], :text(\"Available Payment Options\")"
    terms_label_pattern: str = r"I Agree|Terms of Services|Privacy Policy"
    terms_fallback: str = "#i_agree, input[name=\"i_agree\"], input[id*=\"agree\"]"
    complete_button: str = "button:has-text(\"Complete Checkout\")"
    submit_fallback: str = "form[action*=\"/checkout\"] button[type=\"submit\"]"
    confirmation_markers: list[str] = Field(default_factory=lambda: [
        "text=Thank you",
        "text=Order Confirmation",
    ])


class EnvironmentConfig(BaseModel):
    base_url: str
    products: dict[str, str] = Field(default_factory=dict)

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"


class SiteConfig(BaseModel):
    name: str
    account: str  # short prefix used in result folders, e.g. "sg" or "osp"
    currency_prefix: str = "$"
    environments: dict[str, EnvironmentConfig]
    credentials: Optional[Credentials] = None
    login: LoginSelectors = Field(default_factory=LoginSelectors)
    product_page: ProductPageSelectors = Field(default_factory=ProductPageSelectors)
    checkout: CheckoutSelectors = Field(default_factory=CheckoutSelectors)
    overlays: OverlayPolicy = Field(default_factory=OverlayPolicy)

    def environment(self, env: str) -> EnvironmentConfig:
        try:
            return self.environments[env]
        except KeyError:
            known = ", ".join(sorted(self.environments)) or "none"
            raise ValueError(f"Unknown environment '{env}' for {self.name} (known: {known})") from None

    @classmethod
    def load(cls, path: str | Path) -> "SiteConfig":
        """Load a site config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Site config not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)


class RunSettings(BaseModel):
    env: str = "dev"
    cart_limit: Optional[int] = None
    cart_count_ceiling: int = 100
    headless: bool = False
    tolerance: Decimal = Decimal("0.5")
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    artwork_dir: str = "Materials"
    artwork_files: int = 10
    shipping_option: str = "Standard"
    payment_method: str = "Bank Transfer"
    output_dir: str = "test-results"
    capture_video: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "RunSettings":
        """Build settings from ENV, CART_LIMIT, FAST, HEADLESS and CI.

        Keyword overrides that are not None win over the environment.
        """
        environ = os.environ if environ is None else environ
        values: dict = {"env": environ.get("ENV", "dev")}

        if environ.get("CART_LIMIT"):
            values["cart_limit"] = int(environ["CART_LIMIT"])
        elif environ.get("FAST", "").lower() == "true":
            values["cart_limit"] = 1

        values["headless"] = (
            environ.get("HEADLESS", "").lower() == "true" or bool(environ.get("CI"))
        )

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
