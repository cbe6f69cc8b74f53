from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel
import yaml
import os

class GatewayConfig(BaseModel):
    base_url: str = "http://localhost:8000"
    timeout_seconds: float = 30.0

class UploadConfig(BaseModel):
    max_file_size_bytes: int = 10 * 1024 * 1024
    allowed_content_types: list[str] = ["application/pdf", "image/jpeg", "image/jpg", "image/png"]
    report_type_ids: dict[str, str] = {
        "medical-prescription": "29574bad-7899-4317-b6f1-8cd26e2e4e3e",
        "blood-test-report": "605070dd-30a3-4b8c-b931-2705e39411d0",
    }

class PollingConfig(BaseModel):
    interval_seconds: float = 2.0
    max_attempts: int = 90

class SessionConfig(BaseModel):
    cookie_names: list[str] = ["access_token", "session_id"]
    cookie_max_age: int = 60 * 60 * 24 * 7
    cookie_secure: bool = False
    cookie_samesite: str = "lax"

class PortalConfig(BaseModel):
    # uvicorn serves the proxy on 8000 by default
    base_url: str = "http://localhost:8000"

class CORSConfig(BaseModel):
    allow_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

class AppSettings(BaseSettings):
    gateway: GatewayConfig = GatewayConfig()
    upload: UploadConfig = UploadConfig()
    polling: PollingConfig = PollingConfig()
    session: SessionConfig = SessionConfig()
    cors: CORSConfig = CORSConfig()
    portal: PortalConfig = PortalConfig()
    backend_url: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gateway_url(self) -> str:
        """BACKEND_URL from the environment wins over the yaml base_url."""
        return (self.backend_url or self.gateway.base_url).rstrip("/")

def load_settings(config_path: str = "backend/config/config.yaml") -> AppSettings:
    """Loads settings from config.yaml and applies env overrides."""
    
    # Try multiple paths for convenience during testing vs running
    paths_to_try = [
        config_path,
        "config.yaml",
        "config/config.yaml",
        os.path.join(os.path.dirname(__file__), "config.yaml")
    ]
    
    yaml_data = {}
    for path in paths_to_try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
            break
            
    # Manually map yaml sections to our sub-models
    return AppSettings(
        gateway=GatewayConfig(**yaml_data.get("gateway", {})),
        upload=UploadConfig(**yaml_data.get("upload", {})),
        polling=PollingConfig(**yaml_data.get("polling", {})),
        session=SessionConfig(**yaml_data.get("session", {})),
        cors=CORSConfig(**yaml_data.get("cors", {})),
        portal=PortalConfig(**yaml_data.get("portal", {}))
    )

# Global settings instance
settings = load_settings()
