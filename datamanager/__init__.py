"""
datamanager package
Dieses Paket enthält die DataManager-Implementierungen.
This package contains the DataManager implementations.
"""

from .data_manager_interface import DataManagerInterface
from .sql_data_manager import SQLDataManager

__all__ = ['DataManagerInterface', 'SQLDataManager']
