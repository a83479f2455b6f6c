"""Template helpers available to edge-rendered themes.

Each group module implements one family of helpers. Which of them an edge
bundle actually ships is decided by `policy.HELPER_POLICY`.
"""

from stencil_bundle.helpers.policy import HELPER_POLICY, build_helper_module, python_name, resolve_helpers

__all__ = ["HELPER_POLICY", "build_helper_module", "python_name", "resolve_helpers"]
