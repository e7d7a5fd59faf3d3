"""
Back Office Entry Point

Wires the data files, the credential encryption provider and the managers
together. The console screens hold one SmartBank and call into its managers.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .admins import Admin, AdminManager
from .clients import Client, ClientManager
from .config import SmartBankConfig, get_config
from .currency import Currency, CurrencyManager
from .encryption import CaesarEncryptionProvider, EncryptionProvider, create_encryption_provider
from .logging_config import get_logger, setup_logging
from .sessions import SessionLog
from .storage import RecordStore
from .transactions import TransactionLedger, TransferLog


class SmartBank:
    """Back office with all components initialized"""

    def __init__(self, data_dir: Union[str, Path],
                 encryption_provider: Optional[EncryptionProvider] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[SmartBankConfig] = None):
        if config is None:
            config = SmartBankConfig(data_dir=str(data_dir))
        elif Path(config.data_dir) != Path(data_dir):
            config = config.model_copy(update={"data_dir": str(data_dir)})
        self.config = config
        self.data_dir = Path(config.data_dir)
        self.provider = encryption_provider or CaesarEncryptionProvider(config.encryption_key)

        path = config.data_path

        self.ledger = TransactionLedger(path(config.ledger_file), clock=clock)
        self.transfer_log = TransferLog(path(config.transfer_log_file), clock=clock)

        self.admins = AdminManager(
            RecordStore(path(config.admins_file), Admin, self.provider),
            SessionLog(path(config.admin_session_file), with_permissions=True, clock=clock),
        )
        self.clients = ClientManager(
            RecordStore(path(config.clients_file), Client, self.provider),
            self.ledger,
            SessionLog(path(config.client_session_file), clock=clock),
            self.transfer_log,
        )
        self.currencies = CurrencyManager(
            RecordStore(path(config.currencies_file), Currency, self.provider)
        )

        get_logger("smartbank").info(f"SmartBank initialized with data directory {self.data_dir}")

    @classmethod
    def from_config(cls, config: Optional[SmartBankConfig] = None,
                    clock: Optional[Callable[[], datetime]] = None) -> 'SmartBank':
        """Build a back office from settings (environment, .env or defaults)"""
        config = config or get_config()
        setup_logging(config.log_level, fmt=config.log_format)
        provider = create_encryption_provider(
            config.encryption_provider,
            shift=config.encryption_key,
            master_key=config.encryption_master_key,
        )
        return cls(config.data_dir, encryption_provider=provider, clock=clock, config=config)
