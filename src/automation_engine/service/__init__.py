"""Remote data service: HTTP, read-only SQL and workflow requests for executors."""

from .client import HttpRemoteClient
from .remote import RemoteDataService, WorkflowRun, WorkflowRunner, extract_basic_auth
from .sqlite_store import CollectionQueryBuilder, SqliteStore
from .templates import TEMPLATE_FORMATS, RequestConfig, RequestTemplateGenerator

__all__ = [
    "RemoteDataService",
    "WorkflowRunner",
    "WorkflowRun",
    "HttpRemoteClient",
    "SqliteStore",
    "CollectionQueryBuilder",
    "RequestTemplateGenerator",
    "RequestConfig",
    "TEMPLATE_FORMATS",
    "extract_basic_auth",
]
