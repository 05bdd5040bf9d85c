"""Application settings and configuration.

This module defines all configuration options for the Slider Gate service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from slider_gate.core.trail import TrailPolicy

DurableBackend = Literal["file", "sql", "memory"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every lifecycle limit and heuristic threshold used by the verification
    engine lives here so that no call site hardcodes its own copy.
    """

    # Application metadata
    app_name: str = Field(default="Slider Gate", alias="APP_NAME")
    app_version: str = Field(default="2.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Puzzle geometry (canvas and slider track, in CSS pixels)
    canvas_width: int = Field(default=320, alias="CAPTCHA_CANVAS_WIDTH")
    canvas_height: int = Field(default=200, alias="CAPTCHA_CANVAS_HEIGHT")
    piece_size: int = Field(default=50, alias="CAPTCHA_PIECE_SIZE")
    knob_length: int = Field(default=42, alias="CAPTCHA_KNOB_LENGTH")
    knob_radius: int = Field(default=9, alias="CAPTCHA_KNOB_RADIUS")
    track_padding: int = Field(default=40, alias="CAPTCHA_TRACK_PADDING")
    target_margin_x: int = Field(default=70, alias="CAPTCHA_TARGET_MARGIN_X")
    target_margin_top: int = Field(default=30, alias="CAPTCHA_TARGET_MARGIN_TOP")
    target_margin_bottom: int = Field(default=60, alias="CAPTCHA_TARGET_MARGIN_BOTTOM")
    slider_target_y: int = Field(default=75, alias="CAPTCHA_SLIDER_TARGET_Y")

    # Challenge lifecycle
    expiry_seconds: int = Field(default=300, alias="CAPTCHA_EXPIRY_SECONDS")
    max_attempts: int = Field(default=5, alias="CAPTCHA_MAX_ATTEMPTS")
    tolerance: float = Field(default=5.0, alias="CAPTCHA_TOLERANCE")
    bind_client_address: bool = Field(default=False, alias="CAPTCHA_BIND_CLIENT_ADDRESS")
    challenge_id_bytes: int = Field(default=32, alias="CAPTCHA_CHALLENGE_ID_BYTES")
    success_token_bytes: int = Field(default=16, alias="CAPTCHA_SUCCESS_TOKEN_BYTES")
    success_token_ttl_seconds: int = Field(
        default=300, alias="CAPTCHA_SUCCESS_TOKEN_TTL_SECONDS"
    )

    # Trail heuristics
    min_trail_length: int = Field(default=3, alias="CAPTCHA_MIN_TRAIL_LENGTH")
    max_trail_length: int = Field(default=1000, alias="CAPTCHA_MAX_TRAIL_LENGTH")
    min_duration_ms: float = Field(default=100.0, alias="CAPTCHA_MIN_DURATION_MS")
    min_secondary_spread: float = Field(default=1.0, alias="CAPTCHA_MIN_SECONDARY_SPREAD")
    velocity_check_min_points: int = Field(
        default=10, alias="CAPTCHA_VELOCITY_CHECK_MIN_POINTS"
    )
    min_velocity_stddev: float = Field(default=0.01, alias="CAPTCHA_MIN_VELOCITY_STDDEV")
    freedrag_min_trail_length: int = Field(
        default=5, alias="CAPTCHA_FREEDRAG_MIN_TRAIL_LENGTH"
    )
    freedrag_min_duration_ms: float = Field(
        default=200.0, alias="CAPTCHA_FREEDRAG_MIN_DURATION_MS"
    )
    freedrag_min_distance: float = Field(default=20.0, alias="CAPTCHA_FREEDRAG_MIN_DISTANCE")

    # Per-client creation throttle
    rate_limit_per_minute: int = Field(default=10, alias="CAPTCHA_RATE_LIMIT_PER_MINUTE")
    rate_limit_window_seconds: float = Field(
        default=60.0, alias="CAPTCHA_RATE_LIMIT_WINDOW_SECONDS"
    )
    trust_forwarded_for: bool = Field(default=False, alias="CAPTCHA_TRUST_FORWARDED_FOR")

    # Durable tier
    durable_backend: DurableBackend = Field(default="file", alias="CAPTCHA_DURABLE_BACKEND")
    session_path: str = Field(default="./captcha_sessions", alias="CAPTCHA_SESSION_PATH")
    database_url: str = Field(default="sqlite:///./slider_gate.db", alias="DATABASE_URL")
    durable_io_timeout_seconds: float = Field(
        default=2.0, alias="CAPTCHA_DURABLE_IO_TIMEOUT_SECONDS"
    )
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Cleanup sweeper
    sweeper_enabled: bool = Field(default=True, alias="CAPTCHA_SWEEPER_ENABLED")
    sweep_interval_seconds: float = Field(default=60.0, alias="CAPTCHA_SWEEP_INTERVAL_SECONDS")

    # CORS configuration for embedding the widget on other origins
    cors_origins: list[str] = Field(
        default=["http://localhost:8000", "http://localhost:8080"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def slider_track_length(self) -> int:
        """Return the horizontal distance the slider knob can travel."""
        return self.canvas_width - self.track_padding

    @property
    def puzzle_range(self) -> int:
        """Return the horizontal span usable by the puzzle piece.

        The piece outline is the knob length plus both tab radii and a
        3px stroke allowance.
        """
        piece_outline = self.knob_length + self.knob_radius * 2 + 3
        return self.canvas_width - piece_outline

    @property
    def trail_policy(self) -> TrailPolicy:
        """Bundle the heuristic thresholds for the trail verifier."""
        return TrailPolicy(
            tolerance=self.tolerance,
            min_trail_length=self.min_trail_length,
            min_duration_ms=self.min_duration_ms,
            min_secondary_spread=self.min_secondary_spread,
            velocity_check_min_points=self.velocity_check_min_points,
            min_velocity_stddev=self.min_velocity_stddev,
            freedrag_min_trail_length=self.freedrag_min_trail_length,
            freedrag_min_duration_ms=self.freedrag_min_duration_ms,
            freedrag_min_distance=self.freedrag_min_distance,
        )


settings = Settings()
