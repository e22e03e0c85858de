"""
Configuration management for the image studio backend.
Centralized configuration with environment variables.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class SecurityError(Exception):
    """Security configuration error."""
    pass


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Supabase configuration
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(..., validation_alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: Optional[str] = Field(None, validation_alias="SUPABASE_SERVICE_ROLE_KEY")

    # Supabase signs access tokens with this secret (HS256)
    supabase_jwt_secret: str = Field(default="", validation_alias="SUPABASE_JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_audience: str = Field(default="authenticated", validation_alias="JWT_AUDIENCE")

    # FAL.ai configuration
    fal_key: str = Field(default="", validation_alias="FAL_KEY")
    fal_text_to_image_endpoint: str = Field(default="fal-ai/nano-banana", validation_alias="FAL_TEXT_TO_IMAGE_ENDPOINT")
    fal_image_edit_endpoint: str = Field(default="fal-ai/nano-banana/edit", validation_alias="FAL_IMAGE_EDIT_ENDPOINT")
    fal_timeout_seconds: float = Field(default=120.0, validation_alias="FAL_TIMEOUT_SECONDS")

    # AI gateway used for prompt enhancement (OpenAI-compatible chat completions)
    ai_gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions",
        validation_alias="AI_GATEWAY_URL"
    )
    ai_gateway_api_key: Optional[str] = Field(None, validation_alias="AI_GATEWAY_API_KEY")
    prompt_enhancer_model: str = Field(default="google/gemini-2.5-flash", validation_alias="PROMPT_ENHANCER_MODEL")

    # Google Generative Language API used for audio transcription
    google_api_key: Optional[str] = Field(None, validation_alias="GOOGLE_API_KEY")
    google_api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        validation_alias="GOOGLE_API_BASE_URL"
    )
    transcription_model: str = Field(default="gemini-2.0-flash-exp", validation_alias="TRANSCRIPTION_MODEL")

    # Outbound HTTP timeout for the AI proxies
    ai_request_timeout: float = Field(default=60.0, validation_alias="AI_REQUEST_TIMEOUT")

    # Application configuration
    app_name: str = Field(default="Gen AI Image Studio", validation_alias="APP_NAME")
    app_version: str = Field(default="1.0.0", validation_alias="APP_VERSION")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Public frontend URL used for share links and sign-up redirects
    public_app_url: str = Field(default="http://localhost:8080", validation_alias="PUBLIC_APP_URL")

    # CORS configuration
    cors_origins: list = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8080",
        ],
        validation_alias="ALLOWED_ORIGINS"
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    rate_limit_per_minute: int = Field(default=60, validation_alias="RATE_LIMIT_PER_MINUTE")

    # Credits
    generation_credit_cost: int = Field(default=5, validation_alias="GENERATION_CREDIT_COST")

    # File upload configuration
    max_file_size: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_FILE_SIZE")  # 10MB
    allowed_file_types: list = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
        validation_alias="ALLOWED_FILE_TYPES"
    )

    # Storage configuration
    generated_images_bucket: str = Field(default="generated-images", validation_alias="GENERATED_IMAGES_BUCKET")
    payment_screenshots_bucket: str = Field(default="payment-screenshots", validation_alias="PAYMENT_SCREENSHOTS_BUCKET")
    persist_generated_images: bool = Field(default=True, validation_alias="PERSIST_GENERATED_IMAGES")

    # Support information shown on the settings page
    support_email: str = Field(default="gen.system.ai@gmail.com", validation_alias="SUPPORT_EMAIL")
    documentation_url: str = Field(
        default="https://docs.langdock.com/product/chat/image-generation",
        validation_alias="DOCUMENTATION_URL"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() in ["development", "dev", "local"]

    def validate_production_security(self) -> None:
        """Validate that security configurations are production-ready."""
        if not self.is_production():
            return

        security_errors = []

        if self.debug:
            security_errors.append("DEBUG must be False in production")

        if not self.supabase_jwt_secret or len(self.supabase_jwt_secret) < 32:
            security_errors.append("SUPABASE_JWT_SECRET must be at least 32 characters")

        if not self.supabase_service_role_key:
            security_errors.append("SUPABASE_SERVICE_ROLE_KEY is required in production")

        if "*" in self.cors_origins:
            security_errors.append("CORS wildcard origins (*) are not allowed in production")

        if security_errors:
            error_msg = "Production security validation failed:\n" + "\n".join(f"- {error}" for error in security_errors)
            raise SecurityError(error_msg)

    @property
    def get_service_key(self) -> str:
        """Get the service key for Supabase operations."""
        if self.supabase_service_role_key:
            return self.supabase_service_role_key
        raise ValueError("No Supabase service key configured. Set SUPABASE_SERVICE_ROLE_KEY environment variable")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the global settings instance (FastAPI dependency friendly)."""
    return settings
