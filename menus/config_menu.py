import questionary

from config import CONFIG_SCHEMA, update_config
from utils.logger import log_error, log_info

PROMPTS = {
    "appClientId": "Spotify app Client ID:",
    "appClientSecret": "Spotify app Client Secret:",
    "redirectPort": "Local redirect port (must match http://localhost:<port> in the Spotify dashboard):",
}


def config_menu(config: dict) -> dict:
    """
    Prompt for each setting, keeping the current value on empty input.
    Returns the updated config dict (not saved).
    """
    for key, message in PROMPTS.items():
        current = str(config.get(key) or "")
        if key == "appClientSecret":
            value = questionary.password(message + (" (leave empty to keep current)" if current else "")).ask()
        else:
            value = questionary.text(message, default=current).ask()

        # Ctrl-C in questionary returns None
        if value is None:
            log_info("Config edit cancelled.")
            return config

        if not value.strip():
            continue

        ok, msg = update_config(config, key, value)
        if not ok:
            log_error(msg)

    player_type = questionary.select(
        "Playback backend:",
        choices=CONFIG_SCHEMA["playerType"]["choices"],
        default=config.get("playerType") or "web",
    ).ask()
    if player_type:
        update_config(config, "playerType", player_type)

    return config
