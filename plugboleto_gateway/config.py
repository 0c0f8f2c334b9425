"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "plugboleto-gateway"
    log_level: str = "INFO"

    # PlugBoleto credentials (software house + ledger party)
    cnpj_sh: str = ""
    token_sh: str = ""
    cnpj_cedente: str = ""

    # Environment
    production: bool = False
    debug: bool = False
    production_api_base: str = "https://plugboleto.com.br/api/v1"
    homologation_api_base: str = "https://homologacao.plugboleto.com.br/api/v1"

    # HTTP Client
    http_timeout_seconds: float = 30.0
    default_page_limit: int = 200

    # Asynchronous flows
    issuance_confirmation_delay_seconds: float = 4.0
    print_poll_interval_seconds: float = 1.0
    print_poll_max_attempts: int = 10
    return_initial_delay_seconds: float = 1.0
    return_poll_interval_seconds: float = 2.0
    return_poll_max_attempts: int = 70

    @property
    def api_base(self) -> str:
        return self.production_api_base if self.production else self.homologation_api_base


settings = Settings()
