"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pathlib import Path

from pydantic_settings import BaseSettings


class SmartBankConfig(BaseSettings):
    """SmartBank back office configuration"""

    # Flat file storage
    data_dir: str = "data"
    admins_file: str = "Admins.text"
    clients_file: str = "Clients.txt"
    currencies_file: str = "Currencies.txt"
    ledger_file: str = "AllTransactions.txt"
    transfer_log_file: str = "Transactions.txt"  # Legacy admin transfer log
    admin_session_file: str = "AdminsSessionLog.txt"
    client_session_file: str = "ClientsSessionLog.txt"

    # Encryption of passwords and PINs at rest
    encryption_provider: str = "caesar"  # caesar or fernet
    encryption_key: int = 2  # Shift used by the caesar provider
    encryption_master_key: str = ""  # SMARTBANK_ENCRYPTION_MASTER_KEY env var

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    class Config:
        env_prefix = "SMARTBANK_"
        env_file = ".env"
        case_sensitive = False

    def data_path(self, file_name: str) -> Path:
        """Resolve a data file name against the data directory"""
        return Path(self.data_dir) / file_name


# Global configuration instance
config = SmartBankConfig()


def get_config() -> SmartBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> SmartBankConfig:
    """Reload configuration from environment"""
    global config
    config = SmartBankConfig()
    return config
