"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BankConfig(BaseSettings):
    """Monopoly bank ledger configuration"""
    
    # Database configuration
    database_url: str = "sqlite:///monopoly_bank.db"  # memory://, sqlite:///path, postgresql://...
    operation_timeout_seconds: float = 5.0  # Bound on waiting for the ledger lock
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Game rules configuration
    max_teams: int = 8
    default_team_count: int = 8  # Teams provisioned by reset_all_tables
    starting_cash: str = "1500.00"
    allow_negative_cash: bool = True  # Teams may go into debt
    purchase_debits_cash: bool = False  # House rule: buying a property costs its value
    
    class Config:
        env_prefix = "MONOPOLY_BANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankConfig()


def get_config() -> BankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankConfig:
    """Reload configuration from environment"""
    global config
    config = BankConfig()
    return config
