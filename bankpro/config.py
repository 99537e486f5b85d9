"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings


class BankproConfig(BaseSettings):
    """BankPro core configuration"""
    
    # Storage configuration
    storage_backend: str = "json"  # memory, json or sqlite
    storage_path: str = "bankpro_data"  # Directory for json, database file for sqlite
    snapshot_key: str = "bankpro_v1"
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    # Card configuration
    default_card_type: str = "VISA"
    card_number_prefix: str = "4"
    
    # Display configuration
    currency_symbol: str = "₹"
    
    # Business rules configuration
    enforce_source_ownership: bool = False  # Reject transfers from accounts the actor does not own
    
    class Config:
        env_prefix = "BANKPRO_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankproConfig()


def get_config() -> BankproConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankproConfig:
    """Reload configuration from environment"""
    global config
    config = BankproConfig()
    return config
