import argparse
import json
import sys
import time
from typing import Any, Dict, List, Optional

from config import CONFIG_PATH, load_config, require_app_identity, save_config, update_config, validate_config
from players import build_player
from spotify_api.auth import SpotifyAuth, spotify_app_setup_instructions
from spotify_api.client import SpotifyClient
from spotify_api.devices import find_device
from spotify_api.errors import ConfigError, SpotifyCLIError
from spotify_api.token_manager import DEFAULT_TOKEN_CACHE_PATH, TokenManager
from utils.logger import log_error, log_info, log_success, log_warning, setup_logging

# Pause before reading state so Spotify reports the new track.
STATE_SETTLE_SECONDS = 0.2

SEARCH_FLAGS = (("track", "track"), ("album", "album"), ("artist", "artist"), ("playlist", "playlist"))


class ConfigCreated(Exception):
    """A default config file was just written; the user must fill it in."""


def get_config(args: argparse.Namespace) -> Dict[str, Any]:
    config, created = load_config(args.config)
    if created:
        save_config(config, args.config)
        raise ConfigCreated(args.config)
    return config


def authorize(config: Dict[str, Any], token_path: str):
    identity = require_app_identity(config)
    auth = SpotifyAuth(identity, token_manager=TokenManager(cache_path=token_path))
    return auth.authorize()


def build_client(config: Dict[str, Any], token_path: str) -> SpotifyClient:
    creds = authorize(config, token_path)
    return SpotifyClient(creds.user_access_token)


def _player(args: argparse.Namespace, config: Dict[str, Any]):
    return build_player(config.get("playerType", "web"), lambda: build_client(config, args.tokens))


def _print_state(client: SpotifyClient) -> None:
    time.sleep(STATE_SETTLE_SECONDS)
    print(client.current_state().describe())


# -----------------
# Command handlers
# -----------------

def handle_play(args: argparse.Namespace) -> int:
    config = get_config(args)

    if args.device:
        client = build_client(config, args.tokens)
        device = find_device(client.list_devices(), args.device)
        if device is None:
            log_error(f"Could not find any devices '{args.device}'.")
            return 1
        client.play_on_device(device)
        log_success(f"Playing on {device.name} ({device.type}).")
        _print_state(client)
        return 0

    for flag, kind in SEARCH_FLAGS:
        query = getattr(args, flag)
        if query:
            client = build_client(config, args.tokens)
            uri = client.search(query, kind)
            log_info(f"Found {kind}: {uri}")
            client.play_reference(uri)
            _print_state(client)
            return 0

    if args.uri:
        client = build_client(config, args.tokens)
        client.play_reference(args.uri)
        _print_state(client)
        return 0

    print(_player(args, config).play())
    return 0


def handle_pause(args: argparse.Namespace) -> int:
    print(_player(args, get_config(args)).pause())
    return 0


def handle_next(args: argparse.Namespace) -> int:
    print(_player(args, get_config(args)).next_track())
    return 0


def handle_prev(args: argparse.Namespace) -> int:
    print(_player(args, get_config(args)).previous_track())
    return 0


def handle_info(args: argparse.Namespace) -> int:
    print(_player(args, get_config(args)).state())
    return 0


def handle_volume(args: argparse.Namespace) -> int:
    client = build_client(get_config(args), args.tokens)
    client.volume(args.percent)
    log_success(f"Volume set to {args.percent}%.")
    return 0


def handle_shuffle(args: argparse.Namespace) -> int:
    client = build_client(get_config(args), args.tokens)
    client.toggle_shuffle(args.toggle == "on")
    print(f"Shuffle toggled {args.toggle}.")
    return 0


def handle_devices(args: argparse.Namespace) -> int:
    client = build_client(get_config(args), args.tokens)
    devices = client.list_devices()

    if args.pick:
        from menus.device_menu import pick_device

        device = pick_device(devices)
        if device is None:
            log_info("No device selected.")
            return 0
        client.play_on_device(device)
        log_success(f"Playing on {device.name} ({device.type}).")
        return 0

    if not devices:
        log_warning("No Spotify devices available.")
        return 0

    print("[DeviceID]\t\t\t\t\tDeviceType\tName")
    for d in devices:
        marker = " *" if d.is_active else ""
        print(f"[{d.id}]\t{d.type}\t{d.name}{marker}")
    return 0


def handle_login(args: argparse.Namespace) -> int:
    authorize(get_config(args), args.tokens)
    log_success("Authorized with Spotify.")
    return 0


def handle_logout(args: argparse.Namespace) -> int:
    if TokenManager(cache_path=args.tokens).clear():
        log_success("Cached Spotify tokens removed.")
        return 0
    log_error(f"Could not remove {args.tokens}.")
    return 1


def handle_config(args: argparse.Namespace) -> int:
    config, _ = load_config(args.config)

    updates = [
        ("appClientId", args.set_app_client_id),
        ("appClientSecret", args.set_app_client_secret),
        ("redirectPort", args.set_redirect_port),
        ("playerType", args.set_player_type),
    ]
    for key, value in updates:
        if value is None:
            continue
        ok, message = update_config(config, key, value)
        if not ok:
            log_error(message)
            return 1
        log_info(message)

    if args.interactive:
        from menus.config_menu import config_menu

        config = config_menu(config)

    save_config(config, args.config)

    is_valid, errors = validate_config(config)
    if not is_valid:
        log_warning("Configs were saved but errors were found:")
        for err in errors:
            log_warning(f"- {err}")
        log_info(spotify_app_setup_instructions(redirect_port=str(config.get("redirectPort") or "")))
        return 1

    log_success(f"Config saved to {args.config}.")
    return 0


# -----------------
# Argument parsing
# -----------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spotify-cli", description="Use Spotify from the Command Line.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--config", default=CONFIG_PATH, help=argparse.SUPPRESS)
    parser.add_argument("--tokens", default=DEFAULT_TOKEN_CACHE_PATH, help=argparse.SUPPRESS)
    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    p = sub.add_parser("play", aliases=["pl"], help="Play/Resume playback, optionally searching for something to play.")
    group = p.add_mutually_exclusive_group()
    group.add_argument("-d", "--device", help="Play on a device. Any partial identifier, e.g. 'mbp', '064a', 'smartphone'.")
    group.add_argument("-t", "--track", help="A track to play.")
    group.add_argument("-m", "--album", help="An album to play.")
    group.add_argument("-r", "--artist", help="An artist to play.")
    group.add_argument("-l", "--playlist", help="A playlist to play.")
    group.add_argument("-u", "--uri", help="A Spotify URI to play, e.g. spotify:album:...")
    p.set_defaults(func=handle_play)

    sub.add_parser("pause", aliases=["ps"], help="Pause playback.").set_defaults(func=handle_pause)
    sub.add_parser("next", aliases=["nx"], help="Skip to next track.").set_defaults(func=handle_next)
    sub.add_parser("prev", aliases=["pv"], help="Skip to last track.").set_defaults(func=handle_prev)

    p = sub.add_parser("volume", aliases=["v"], help="Adjust the volume.")
    p.add_argument("percent", type=int, help="Volume percent (0-100).")
    p.set_defaults(func=handle_volume)

    p = sub.add_parser("shuffle", aliases=["s"], help="Toggle shuffle.")
    p.add_argument("toggle", choices=["on", "off"])
    p.set_defaults(func=handle_shuffle)

    p = sub.add_parser("devices", aliases=["d"], help="Show playable devices.")
    p.add_argument("--pick", action="store_true", help="Choose a device interactively and play there.")
    p.set_defaults(func=handle_devices)

    sub.add_parser("info", aliases=["i"], help="Show what's currently playing and playback state.").set_defaults(func=handle_info)
    sub.add_parser("login", help="Authorize with Spotify without doing anything else.").set_defaults(func=handle_login)
    sub.add_parser("logout", help="Forget cached Spotify tokens.").set_defaults(func=handle_logout)

    p = sub.add_parser("config", aliases=["c"], help="Configure spotify-cli settings.")
    p.add_argument("--set-app-client-id", help="Set 'appClientId'.")
    p.add_argument("--set-app-client-secret", help="Set 'appClientSecret'.")
    p.add_argument("--set-redirect-port", help="Set 'redirectPort'.")
    p.add_argument("--set-player-type", choices=["web", "osx"], help="Set 'playerType'.")
    p.add_argument("--interactive", action="store_true", help="Prompt for each setting.")
    p.set_defaults(func=handle_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        return args.func(args)
    except ConfigCreated as e:
        print(f"No config file was found, so one was created for you at `{e}`.")
        print("Edit the config file with your Spotify Application credentials or use the command `config` to help you.")
        return 0
    except json.JSONDecodeError as e:
        log_error(f"Config file contains invalid JSON: {e}")
        return 1
    except ConfigError as e:
        log_error(f"Invalid config: {e}")
        log_info(spotify_app_setup_instructions())
        return 1
    except SpotifyCLIError as e:
        log_error(str(e))
        return 1
    except IOError as e:
        log_error(str(e))
        return 1
    except KeyboardInterrupt:
        log_warning("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
