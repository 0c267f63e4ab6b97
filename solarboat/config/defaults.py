"""
Default settings for Solar Boat.

These are the default values used when no user configuration exists.
"""

DEFAULT_SETTINGS = {
    "version": "1.0",

    # External binaries
    "terraform_binary": "terraform",
    "git_binary": "git",

    # Where changed files come from: "merge-base" (committed) or "status" (uncommitted)
    "change_source": "merge-base",
    "base_branch": "main",

    # Module scanning: "line" or "hcl"
    "parser": "line",
    "ignored_dirs": [".git", ".terraform"],
    "markers": {
        "file_suffix": ".tf",
        "module_block": "module",
        "source": "source",
        "config_block": "terraform {",
        "backend": "backend ",
    },

    # Execution
    "plan_output_dir": "terraform-plans",
    "execution_order": "traversal",  # or "dependency"
    "command_timeout": None,  # seconds, None waits forever

    # Logging
    "logging": {
        "level": "WARNING",
        "file": False,
    },
}
