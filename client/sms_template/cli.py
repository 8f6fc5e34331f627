import argparse
import json
import os
import sys

from .logging_config import setup_logging
from .template_api_caller import (
    DEFAULT_BASE_URL,
    TemplateAPIClient,
    TemplateAPIConfig,
    TemplatePage,
)


def write_file(path: str, data: bytes, mode: int = 0o600) -> None:
    with open(path, 'wb') as f:
        f.write(data)
    try:
        os.chmod(path, mode)
    except OSError:
        # chmod is a no-op on non-POSIX
        pass


def get_default_config_dir() -> str:
    """Get the default configuration directory following XDG standards"""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return os.path.join(xdg_config_home, "sms_template")

    home = os.environ.get("HOME")
    if home:
        return os.path.join(home, ".config", "sms_template")

    return os.path.join(os.getcwd(), ".config", "sms_template")


def load_config(args: argparse.Namespace) -> TemplateAPIConfig:
    config = TemplateAPIConfig(args.config)
    if args.verbose:
        config.verbose = True
    if config.verbose:
        setup_logging(log_level='DEBUG')
    return config


def report(response: dict, verbose: bool, summary: str) -> int:
    """Print a response and map the service result code to an exit status"""
    result = response.get('result')
    if verbose:
        print(json.dumps(response, indent=2, ensure_ascii=False))
    elif result == 0:
        print(summary)

    if result != 0:
        print(f"Error {result}: {response.get('errmsg', 'Unknown error')}", file=sys.stderr)
        return 1
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Create the config directory and config file"""
    config_dir = args.config_dir or get_default_config_dir()
    config_path = os.path.join(config_dir, "config.json")

    print(f"Initializing SMS template client in: {config_dir}")

    try:
        os.makedirs(config_dir, exist_ok=True)
    except OSError as e:
        print(f"Failed to create config directory: {e}", file=sys.stderr)
        return 1

    if os.path.exists(config_path) and not args.force:
        print("Files already exist: config.json")
        print("Use --force to overwrite existing files")
        return 1

    config_data = {
        "appid": args.appid,
        "appkey": args.appkey,
        "base_url": args.base_url or DEFAULT_BASE_URL,
    }

    try:
        write_file(config_path, (json.dumps(config_data, indent=2) + "\n").encode("utf-8"), 0o600)
    except OSError as e:
        print(f"Failed to create config file: {e}", file=sys.stderr)
        return 1

    print(f"Created config file: {config_path}")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Add a template"""
    try:
        config = load_config(args)
        with TemplateAPIClient(config) as client:
            response = client.add_template(args.text, args.type, args.title, args.remark,
                                           args.international).result()
        template_id = (response.get('data') or {}).get('id', 'N/A')
        return report(response, config.verbose, f"Template added! Template ID: {template_id}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_mod(args: argparse.Namespace) -> int:
    """Modify a template"""
    try:
        config = load_config(args)
        with TemplateAPIClient(config) as client:
            response = client.modify_template(args.tpl_id, args.text, args.type, args.title,
                                              args.remark, args.international).result()
        return report(response, config.verbose, f"Template {args.tpl_id} modified")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_del(args: argparse.Namespace) -> int:
    """Delete templates"""
    try:
        config = load_config(args)
        with TemplateAPIClient(config) as client:
            response = client.delete_template(args.tpl_id).result()
        ids = ', '.join(str(tpl_id) for tpl_id in args.tpl_id)
        return report(response, config.verbose, f"Deleted template(s): {ids}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_get(args: argparse.Namespace) -> int:
    """Query template status"""
    try:
        config = load_config(args)
        tpl_id = args.tpl_id or None
        tpl_page = None if tpl_id else TemplatePage(args.offset, args.max)
        with TemplateAPIClient(config) as client:
            response = client.get_template(tpl_id, tpl_page).result()

        if not config.verbose and response.get('result') == 0:
            for template in response.get('data') or []:
                print(f"{template.get('id')}\t{template.get('status')}\t{template.get('text')}")
        return report(response, config.verbose, f"{response.get('count', 0)} of "
                                                f"{response.get('total', 0)} template(s)")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print the full JSON response and debug logs")


def add_template_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("text", help="Template text, placeholders as {1}, {2}, ...")
    parser.add_argument("--type", type=int, default=0, help="0 for a normal SMS, 1 for marketing SMS (default: 0)")
    parser.add_argument("--title", default=None, help="Template name")
    parser.add_argument("--remark", default=None, help="Template remark, e.g. the use case")
    parser.add_argument("--international", type=int, default=None,
                        help="0 for domestic SMS, 1 for international (default: 0)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="sms-template", description="SMS template management utilities")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create the client config file",
                            description="Create the configuration directory and a config file holding the app id and app key.")
    p_init.add_argument("--config-dir", help="Config directory (default: XDG_CONFIG_HOME/sms_template or ~/.config/sms_template)")
    p_init.add_argument("--appid", required=True, help="SDK app id")
    p_init.add_argument("--appkey", required=True, help="SDK app key")
    p_init.add_argument("--base-url", help=f"Service base URL (default: {DEFAULT_BASE_URL})")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing files")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("add", help="Add a template")
    add_template_fields(p_add)
    add_common_arguments(p_add)
    p_add.set_defaults(func=cmd_add)

    p_mod = sub.add_parser("mod", help="Modify a template")
    p_mod.add_argument("tpl_id", type=int, help="Id of the template to modify")
    add_template_fields(p_mod)
    add_common_arguments(p_mod)
    p_mod.set_defaults(func=cmd_mod)

    p_del = sub.add_parser("del", help="Delete templates")
    p_del.add_argument("tpl_id", type=int, nargs="+", help="Template id(s) to delete")
    add_common_arguments(p_del)
    p_del.set_defaults(func=cmd_del)

    p_get = sub.add_parser("get", help="Query template status",
                           description="Query templates by id, or page through all templates when no id is given.")
    p_get.add_argument("tpl_id", type=int, nargs="*", help="Template id(s) to query")
    p_get.add_argument("--offset", type=int, default=0, help="Page offset when listing (default: 0)")
    p_get.add_argument("--max", type=int, default=10, help="Page size when listing (default: 10)")
    add_common_arguments(p_get)
    p_get.set_defaults(func=cmd_get)

    return p


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
