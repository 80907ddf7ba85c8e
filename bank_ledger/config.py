"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings


class LedgerConfig(BaseSettings):
    """Bank ledger configuration"""
    
    # Interest configuration (rate applied per accrual cycle)
    savings_interest_rate: Decimal = Decimal("0.02")
    checking_interest_rate: Decimal = Decimal("-0.01")  # Negative rate = charge
    
    # Amount handling
    amount_precision: int = 2  # Decimal places kept on every amount
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    # Feature flags
    enable_events: bool = True
    
    class Config:
        env_prefix = "BANK_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
