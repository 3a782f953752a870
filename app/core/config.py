"""
Configuración centralizada de la aplicación.

Este módulo maneja todas las variables de entorno y configuraciones
de la aplicación usando Pydantic Settings para validación automática.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Endpoints regionales de Selling Partner API
SP_API_REGION_ENDPOINTS = {
    "us-east-1": "https://sellingpartnerapi-na.amazon.com",
    "eu-west-1": "https://sellingpartnerapi-eu.amazon.com",
    "us-west-2": "https://sellingpartnerapi-fe.amazon.com",
}


class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic Settings.

    Todas las configuraciones se cargan desde variables de entorno
    con valores por defecto apropiados para desarrollo.
    """

    # === CONFIGURACIÓN BÁSICA DE LA APP ===
    APP_NAME: str = "Prime Label Automation"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # === CONFIGURACIÓN DE LOGGING ===
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: Optional[str] = None
    LOG_MAX_SIZE_MB: int = 10
    LOG_BACKUP_COUNT: int = 5
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_JSON: bool = False

    # === CONFIGURACIÓN DE BASE DE DATOS ===
    DATABASE_URL: str = "sqlite+aiosqlite:///./prime_labels.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5

    # === CONFIGURACIÓN DE AMAZON SP-API ===
    USE_MOCK: bool = False
    SELLER_ID: Optional[str] = None
    LWA_CLIENT_ID: Optional[str] = None
    LWA_CLIENT_SECRET: Optional[str] = None
    REFRESH_TOKEN: Optional[str] = None
    LWA_TOKEN_URL: str = "https://api.amazon.com/auth/o2/token"
    SP_API_REGION: str = "eu-west-1"
    # Italia por defecto
    MARKETPLACE_ID: str = "APJ6JRA9NG5V4"
    SP_API_ENDPOINT: Optional[str] = None
    SP_API_TIMEOUT_SECONDS: int = 30
    # getOrders exige CreatedAfter; ventana hacia atrás en días
    ORDERS_LOOKBACK_DAYS: int = 30

    # === CONFIGURACIÓN DE REINTENTOS ===
    AMAZON_MAX_RETRIES: int = 3
    AMAZON_RETRY_BASE_DELAY_MS: int = 1000

    # === DIRECCIÓN DE ORIGEN DE ENVÍOS ===
    SHIP_FROM_NAME: str = "Your Warehouse Name"
    SHIP_FROM_ADDRESS_LINE1: str = "123 Example Street"
    SHIP_FROM_ADDRESS_LINE2: str = ""
    SHIP_FROM_CITY: str = "City"
    SHIP_FROM_STATE: str = "RM"
    SHIP_FROM_POSTAL_CODE: str = "00100"
    SHIP_FROM_COUNTRY: str = "IT"
    SHIP_FROM_PHONE: str = "0000000000"

    # === CONFIGURACIÓN DE ETIQUETAS ZPL ===
    # Coordenadas en dots (203 dpi) del bloque SKU/QTY inyectado
    ZPL_INJECT_X: int = 50
    ZPL_INJECT_Y: int = 1100
    ZPL_SKU_MAX_LENGTH: int = 20

    # === CONFIGURACIÓN DE OPERACIONES MASIVAS ===
    BULK_MAX_ORDERS: int = 50

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "allow",
    }

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Valida que el entorno sea válido."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT debe ser uno de: {valid_envs}")
        return v.lower()

    @field_validator("SP_API_REGION")
    @classmethod
    def validate_sp_api_region(cls, v):
        """Valida que la región de SP-API sea conocida."""
        if v not in SP_API_REGION_ENDPOINTS:
            raise ValueError(f"SP_API_REGION debe ser una de: {list(SP_API_REGION_ENDPOINTS)}")
        return v

    @field_validator(
        "AMAZON_MAX_RETRIES",
        "AMAZON_RETRY_BASE_DELAY_MS",
        "BULK_MAX_ORDERS",
        "ZPL_SKU_MAX_LENGTH",
        "ORDERS_LOOKBACK_DAYS",
    )
    @classmethod
    def validate_non_negative(cls, v, info):
        """Valida que los límites numéricos no sean negativos."""
        if v < 0:
            raise ValueError(f"{info.field_name} no puede ser negativo")
        return v

    @property
    def is_production(self) -> bool:
        """Verifica si está en entorno de producción."""
        return self.ENVIRONMENT == "production"

    @property
    def sp_api_endpoint(self) -> str:
        """URL base de SP-API según la región (o el override explícito)."""
        if self.SP_API_ENDPOINT:
            return self.SP_API_ENDPOINT.rstrip("/")
        return SP_API_REGION_ENDPOINTS[self.SP_API_REGION]

    @property
    def has_amazon_credentials(self) -> bool:
        """Verifica si están las credenciales mínimas para SP-API."""
        return bool(self.SELLER_ID and self.LWA_CLIENT_ID and self.LWA_CLIENT_SECRET and self.REFRESH_TOKEN)

    @property
    def ship_from_address(self) -> dict:
        """
        Dirección de origen en el formato de Merchant Fulfillment API.

        Returns:
            dict: Dirección con claves PascalCase
        """
        address = {
            "Name": self.SHIP_FROM_NAME,
            "AddressLine1": self.SHIP_FROM_ADDRESS_LINE1,
            "City": self.SHIP_FROM_CITY,
            "StateOrProvinceCode": self.SHIP_FROM_STATE,
            "PostalCode": self.SHIP_FROM_POSTAL_CODE,
            "CountryCode": self.SHIP_FROM_COUNTRY,
            "Phone": self.SHIP_FROM_PHONE,
        }
        if self.SHIP_FROM_ADDRESS_LINE2:
            address["AddressLine2"] = self.SHIP_FROM_ADDRESS_LINE2
        return address


@lru_cache()
def get_settings() -> Settings:
    """
    Obtiene instancia singleton de configuración.

    Usa LRU cache para evitar recrear la configuración
    múltiples veces durante la ejecución.

    Returns:
        Settings: Instancia de configuración
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Recarga la configuración (útil para testing).

    Returns:
        Settings: Nueva instancia de configuración
    """
    get_settings.cache_clear()
    return get_settings()
