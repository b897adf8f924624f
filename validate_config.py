"""
Lightweight config validation to catch obvious mistakes early.
Run automatically by combine_audio.py after loading ~/.lohighrc.
"""

import sys
from lohigh.logger import get_logger
from lohigh.exceptions import InvalidParameter

logger = get_logger(__name__)

KNOWN_KEYS = {
    "fade", "level", "normalize", "loop", "output_dir", "preview",
    "force", "reverse", "shuffle", "ambient",
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: dict) -> None:
    if config is None:
        return
    if not isinstance(config, dict):
        raise InvalidParameter(
            "Invalid configuration: top level must be a mapping",
            context={"type": type(config).__name__},
        )

    errors = []

    # Crossfade
    fade = config.get("fade")
    if fade is not None:
        if not _is_number(fade) or fade < 0:
            errors.append("fade must be a non-negative number of seconds")
        elif fade > 600:
            logger.warning(f"fade ({fade}s) is unusually long (> 10 minutes)")

    # Normalization
    level = config.get("level")
    if level is not None and (not _is_number(level) or not 0.0 <= level <= 1.0):
        errors.append(f"level ({level}) must be between 0.0 and 1.0")
    normalize = config.get("normalize")
    if normalize is not None and not isinstance(normalize, bool):
        errors.append("normalize must be true/false")

    # Looping
    loop = config.get("loop")
    if loop is not None and (not isinstance(loop, int) or isinstance(loop, bool) or loop < 1):
        errors.append(f"loop ({loop}) must be an integer >= 1")

    # Preview
    preview = config.get("preview")
    if preview is not None and (not _is_number(preview) or preview <= 0):
        errors.append(f"preview ({preview}) must be a positive number of seconds")

    # Paths
    output_dir = config.get("output_dir")
    if output_dir is not None and (not isinstance(output_dir, str) or output_dir.strip() == ""):
        errors.append("output_dir must be a non-empty string")
    ambient = config.get("ambient")
    if ambient is not None and (not isinstance(ambient, str) or ambient.strip() == ""):
        errors.append("ambient must be a non-empty string")

    # Switches
    for key in ("force", "reverse", "shuffle"):
        if config.get(key) is not None and not isinstance(config[key], bool):
            errors.append(f"{key} must be true/false")

    for key in sorted(set(config) - KNOWN_KEYS):
        logger.warning(f"Unknown config key ignored: {key}")

    if errors:
        error_msg = "Invalid configuration:\n" + "\n".join([f"- {e}" for e in errors])
        logger.error(error_msg)
        raise InvalidParameter(error_msg, context={"error_count": len(errors)})


if __name__ == "__main__":
    import os
    import yaml
    from lohigh.logger import configure_logging, log_success

    configure_logging()
    config_path = sys.argv[1] if len(sys.argv) > 1 else os.path.join(os.path.expanduser("~"), ".lohighrc")
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            try:
                config = yaml.safe_load(f)
                validate_config(config)
                log_success(logger, "Configuration is valid.")
            except Exception as e:
                logger.error(f"Config validation failed: {e}")
                sys.exit(1)
    else:
        logger.error(f"{config_path} not found.")
        sys.exit(1)
