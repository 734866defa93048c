from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    erp_base_url: str = "https://api.businesscentral.dynamics.com/v2.0"
    erp_environment: str = "sandbox"
    erp_company_id: str = ""
    erp_access_token: Optional[str] = None
    erp_timeout_seconds: float = 30.0

    extension_publisher: str = "knowall"
    extension_group: str = "thyme"
    extension_version: str = "v1.0"

    max_concurrent_requests: int = 8
    analytics_lookback_months: int = 6
    analytics_cache_ttl_seconds: float = 45.0
    feature_project_analytics: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context):
        self.erp_base_url = self.erp_base_url.rstrip("/")
        if self.max_concurrent_requests < 1:
            self.max_concurrent_requests = 1

    @property
    def standard_api_url(self) -> str:
        return f"{self.erp_base_url}/{self.erp_environment}/api/v2.0/companies({self.erp_company_id})"

    @property
    def extension_api_url(self) -> str:
        return (
            f"{self.erp_base_url}/{self.erp_environment}/api/"
            f"{self.extension_publisher}/{self.extension_group}/{self.extension_version}"
            f"/companies({self.erp_company_id})"
        )

settings = Settings()
