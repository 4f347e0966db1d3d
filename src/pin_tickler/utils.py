import importlib.util
import inspect
import types
from typing import Callable

from pin_tickler.errors import PluginLoadError, PluginSignatureError

PLUGIN_FUNC_NAME = "match_submit_label"


def load_module_from_file(module_file_path: str) -> types.ModuleType:
    """Load a Python module file."""
    spec = importlib.util.spec_from_file_location("submit_matcher", module_file_path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Could not load spec for: {module_file_path}")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)  # executes user code
    return mod


def load_label_predicate(module_file_path: str) -> Callable[[str, str], bool]:
    """Load the user defined submit-label predicate from a Python module file."""
    mod = load_module_from_file(module_file_path)
    fn = getattr(mod, PLUGIN_FUNC_NAME, None)
    if fn is None:
        raise PluginLoadError(
            f"Plugin must define `{PLUGIN_FUNC_NAME}(text: str, label: str) -> bool`"
        )

    sig = inspect.signature(fn)
    params = list(sig.parameters.values())
    if len(params) != 2 or any(
        p.kind not in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        for p in params
    ):
        raise PluginSignatureError(
            f"{PLUGIN_FUNC_NAME} must accept exactly two positional args: (text: str, label: str)"
        )
    return fn
