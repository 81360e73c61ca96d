from importlib.metadata import version

__version__ = version("watchful")


# registers the dict and list proxy types
from . import dict_proxy, list_proxy  # noqa: F401
from .batch import action, batch, register_batch_callback, transaction
from .computed import ComputedResult, ConfigurationError
from .init import init
from .plugin import ReactivePlugin
from .proxy import KEYS, MISSING, ProxyFactory, get_version, proxy, subscribe, to_raw
from .scheduler import scheduler
from .signals import report_change
from .tracking import is_tracking, report_read
from .watcher import Watcher, effect, watch
