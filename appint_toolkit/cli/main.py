"""CLI entrypoint for appint-toolkit."""
import sys
import argparse
import logging
from pathlib import Path

from .validators import validate_connection_name, validate_page_size

VERSION = "0.1.0"

# Configure logging to stderr; responses go to stdout
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

HTTP_LOGGERS = ("httpx", "httpcore")


def _configure_verbosity(args):
    root = logging.getLogger()
    verbose = getattr(args, "verbose", False)
    if verbose:
        root.setLevel(logging.DEBUG)
    elif getattr(args, "quiet", False):
        root.setLevel(logging.WARNING)
    # httpx logs every request at INFO
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def _context(args):
    """Build the client context from --proj, --reg and --token."""
    from appint_toolkit.connections.domains.context import ClientContext

    return ClientContext.from_sources(
        project_id=args.proj,
        region=args.reg,
        token=args.token,
    )


def _manager(args):
    from appint_toolkit.connections.workflows.connection_operations import ConnectionManager

    return ConnectionManager(_context(args))


def cmd_version(args):
    """Show version information."""
    print(f"appint-toolkit {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from appint_toolkit.connections.domains.preferences import CONFIG_PATH, set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference(CONFIG_PATH, str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_set_target(args):
    """Save a default project and/or region."""
    from appint_toolkit.connections.domains.preferences import DEFAULT_PROJECT, DEFAULT_REGION, set_preference

    if not args.proj and not args.reg:
        print("Error: Pass --proj, --reg or both", file=sys.stderr)
        sys.exit(2)

    if args.proj:
        set_preference(DEFAULT_PROJECT, args.proj)
        print(f"Default project set to: {args.proj}")
    if args.reg:
        set_preference(DEFAULT_REGION, args.reg)
        print(f"Default region set to: {args.reg}")


def cmd_config_clear_target(args):
    """Forget the saved default project and region."""
    from appint_toolkit.connections.domains.preferences import DEFAULT_PROJECT, DEFAULT_REGION, clear_preference

    cleared = [key for key in (DEFAULT_PROJECT, DEFAULT_REGION) if clear_preference(key)]
    if cleared:
        print(f"Cleared: {', '.join(cleared)}")
    else:
        print("No default project or region was set")


def cmd_config_show(args):
    """Show current config file path and saved defaults."""
    from appint_toolkit.connections.domains.config_loader import default_config_path
    from appint_toolkit.connections.domains.preferences import CONFIG_PATH, get_preference, target_defaults

    config_path_pref = get_preference(CONFIG_PATH)

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found)")

    project, region = target_defaults()
    print(f"Default project: {project or '(not set)'}")
    print(f"Default region: {region or '(not set)'}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from appint_toolkit.connections.domains.config_loader import default_config_path
    from appint_toolkit.connections.domains.preferences import CONFIG_PATH, clear_preference

    clear_preference(CONFIG_PATH)
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_connections_create(args):
    """Create a connection from a JSON file."""
    validate_connection_name(args.name)
    content = Path(args.file).read_bytes()
    _manager(args).create(
        args.name,
        content,
        service_account=args.sa or "",
        service_account_project=args.sp or "",
        encryption_key=args.encrypted_key or "",
        grant_permission=args.grant_permission,
        create_secret=args.create_secret,
        wait=args.wait,
    )


def cmd_connections_get(args):
    """Get a connection."""
    _manager(args).get(args.name, view=args.view or "", minimal=args.minimal, overrides=args.overrides)


def cmd_connections_list(args):
    """List connections in the region."""
    validate_page_size(args.pageSize)
    _manager(args).list(args.pageSize, args.pageToken or "", args.filter or "", args.orderBy or "")


def cmd_connections_patch(args):
    """Patch a connection."""
    content = Path(args.file).read_bytes()
    update_mask = [m for m in (args.update_mask or "").split(",") if m]
    _manager(args).patch(args.name, content, update_mask)


def cmd_connections_delete(args):
    """Delete a connection."""
    _manager(args).delete(args.name)


def cmd_connections_import(args):
    """Create connections from every JSON file in a folder."""
    _manager(args).import_connections(args.folder, create_secret=args.create_secret, wait=args.wait)


def cmd_connections_export(args):
    """Export connections in the region to a folder."""
    written = _manager(args).export_connections(args.folder, force=args.force)
    if not written:
        logger.info("No connections found to export")


def cmd_connections_iam_get(args):
    """Get the IAM policy on a connection."""
    _manager(args).get_iam_policy(args.name)


def cmd_endpoints_list(args):
    """List endpoint attachments in the region."""
    from appint_toolkit.connections.domains.http_client import HttpClient
    from appint_toolkit.connections.workflows.resource_listing import list_endpoint_attachments

    validate_page_size(args.pageSize)
    list_endpoint_attachments(HttpClient(_context(args)), args.pageSize, args.pageToken or "",
                              args.filter or "", args.orderBy or "")


def cmd_sfdcinstances_list(args):
    """List Salesforce instances in Application Integration."""
    from appint_toolkit.connections.domains.http_client import HttpClient
    from appint_toolkit.connections.workflows.resource_listing import list_sfdc_instances

    list_sfdc_instances(HttpClient(_context(args)))


def _add_paging_arguments(parser):
    parser.add_argument("--pageSize", type=int, default=-1,
                        help="The maximum number of items to return")
    parser.add_argument("--pageToken", help="A page token, received from a previous call")
    parser.add_argument("--filter", help="Filter results")
    parser.add_argument("--orderBy", help="The results would be returned in order")


def build_parser():
    """Build the argument parser and return it with the group parsers used for help output."""
    parser = argparse.ArgumentParser(
        prog="appint",
        description="appint-toolkit CLI - manage Integration Connectors connections",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, invalid connection file, etc.)
  2 - Usage error (invalid arguments, invalid connection name, etc.)

Environment variables:
  GCP_PROJECT  - GCP project ID (overrides config file)
  GCP_REGION   - Region (overrides config file)
  APPINT_TOKEN - Access token (default: application default credentials)

Configuration:
  Default location: ~/.config/appint-toolkit/config.yml
  Custom path: Set with 'appint config set-path <path>'
  View current: Run 'appint config show'
  Default target: Save with 'appint config set-target -p <project> -r <region>'
        """
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument("--verbose", action="store_true", help="Log debug output, including HTTP calls")

    # shared by every command that talks to the API
    target = argparse.ArgumentParser(add_help=False)
    target.add_argument("-p", "--proj", help="GCP project ID (default: GCP_PROJECT, saved default or config file)")
    target.add_argument("-r", "--reg", help="Region (default: GCP_REGION, saved default or config file)")
    target.add_argument("-t", "--token", help="Access token (default: APPINT_TOKEN or application default credentials)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of appint-toolkit"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage appint-toolkit configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/appint-toolkit/preferences.json
        """
    )
    config_set_path_parser.add_argument("path", help="Path to config file")
    config_subparsers.add_parser("show", help="Show current config path and saved defaults")
    config_subparsers.add_parser("clear", help="Clear config path preference")
    config_set_target_parser = config_subparsers.add_parser(
        "set-target",
        help="Save a default project and region",
        description="Save the project and region used when neither a flag nor GCP_PROJECT/GCP_REGION is set."
    )
    config_set_target_parser.add_argument("-p", "--proj", help="Default GCP project ID")
    config_set_target_parser.add_argument("-r", "--reg", help="Default region")
    config_subparsers.add_parser("clear-target", help="Forget the saved default project and region")

    # connections command
    connections_parser = subparsers.add_parser(
        "connections",
        help="Manage connections",
        description="Manage connections for third-party applications"
    )
    connections_subparsers = connections_parser.add_subparsers(dest="connections_command")

    create_parser = connections_subparsers.add_parser(
        "create",
        parents=[target],
        help="Create a connection",
        description="""
Create a connection from a JSON file.

The file must set connectorDetails (name, provider, version). $PROJECT_ID$ and
$REGION$ in config variables are replaced with the active project and region.
Secrets given as passwordDetails or clientKeyDetails are created in Secret
Manager with --create-secret, or assumed to exist at version 1 otherwise.
        """
    )
    create_parser.add_argument("-n", "--name", required=True, help="Connection name")
    create_parser.add_argument("-f", "--file", required=True, help="Connection JSON file")
    create_parser.add_argument("--sa", help="Service account name to run the connection as")
    create_parser.add_argument("--sp", help="Project of the service account (default: active project)")
    create_parser.add_argument("-k", "--encrypted-key",
                               help="Cloud KMS key (locations/*/keyRings/*/cryptoKeys/*) that encrypted the secret files")
    create_parser.add_argument("-g", "--grant-permission", action="store_true",
                               help="Grant the service account access to the connector's resources")
    create_parser.add_argument("--create-secret", action="store_true",
                               help="Create Secret Manager secrets from the referenced files")
    create_parser.add_argument("--wait", action="store_true", help="Wait for the connection to be created")

    get_parser = connections_subparsers.add_parser("get", parents=[target], help="Get a connection")
    get_parser.add_argument("-n", "--name", required=True, help="Connection name")
    get_parser.add_argument("--view", choices=["BASIC", "FULL"], help="Connection view")
    get_parser.add_argument("--minimal", action="store_true",
                            help="Return the connection in connection-file form")
    get_parser.add_argument("-o", "--overrides", action="store_true",
                            help="With --minimal, replace secrets and project ids with portable values")

    list_parser = connections_subparsers.add_parser("list", parents=[target],
                                                    help="List all connections in the region")
    _add_paging_arguments(list_parser)

    patch_parser = connections_subparsers.add_parser("patch", parents=[target], help="Patch a connection")
    patch_parser.add_argument("-n", "--name", required=True, help="Connection name")
    patch_parser.add_argument("-f", "--file", required=True, help="JSON file with the fields to update")
    patch_parser.add_argument("--update-mask", help="Comma separated list of fields to update")

    delete_parser = connections_subparsers.add_parser("delete", parents=[target], help="Delete a connection")
    delete_parser.add_argument("-n", "--name", required=True, help="Connection name")

    import_parser = connections_subparsers.add_parser(
        "import", parents=[target],
        help="Import connections from a folder",
        description="Create a connection for each <name>.json file in a folder, skipping existing ones"
    )
    import_parser.add_argument("-f", "--folder", required=True, help="Folder with connection files")
    import_parser.add_argument("--create-secret", action="store_true",
                               help="Create Secret Manager secrets from the referenced files")
    import_parser.add_argument("--wait", action="store_true", help="Wait for each connection to be created")

    export_parser = connections_subparsers.add_parser("export", parents=[target],
                                                      help="Export connections to a folder")
    export_parser.add_argument("-f", "--folder", required=True, help="Folder to write connection files to")
    export_parser.add_argument("--force", action="store_true", help="Overwrite existing files")

    iam_parser = connections_subparsers.add_parser("iam", help="Manage IAM policies on connections")
    iam_subparsers = iam_parser.add_subparsers(dest="iam_command")
    iam_get_parser = iam_subparsers.add_parser("get", parents=[target], help="Gets the IAM policy on a Connection")
    iam_get_parser.add_argument("-n", "--name", required=True, help="Connection name")

    # endpoints command
    endpoints_parser = subparsers.add_parser("endpoints", help="Manage endpoint attachments")
    endpoints_subparsers = endpoints_parser.add_subparsers(dest="endpoints_command")
    endpoints_list_parser = endpoints_subparsers.add_parser("list", parents=[target],
                                                            help="List endpoint attachments")
    _add_paging_arguments(endpoints_list_parser)

    # sfdcinstances command
    sfdc_parser = subparsers.add_parser("sfdcinstances", help="Manage Salesforce instances")
    sfdc_subparsers = sfdc_parser.add_subparsers(dest="sfdcinstances_command")
    sfdc_subparsers.add_parser("list", parents=[target],
                               help="List all sfdcinstances in Application Integration")

    groups = {
        "config": config_parser,
        "connections": connections_parser,
        "iam": iam_parser,
        "endpoints": endpoints_parser,
        "sfdcinstances": sfdc_parser,
    }
    return parser, groups


CONNECTIONS_COMMANDS = {
    "create": cmd_connections_create,
    "get": cmd_connections_get,
    "list": cmd_connections_list,
    "patch": cmd_connections_patch,
    "delete": cmd_connections_delete,
    "import": cmd_connections_import,
    "export": cmd_connections_export,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, invalid connection file, etc.)
        2 - Usage errors (invalid arguments, invalid connection name, etc.)
    """
    parser, groups = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    _configure_verbosity(args)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            elif args.config_command == "set-target":
                cmd_config_set_target(args)
            elif args.config_command == "clear-target":
                cmd_config_clear_target(args)
            else:
                groups["config"].print_help()
                sys.exit(2)
        elif args.command == "connections":
            if args.connections_command in CONNECTIONS_COMMANDS:
                CONNECTIONS_COMMANDS[args.connections_command](args)
            elif args.connections_command == "iam" and args.iam_command == "get":
                cmd_connections_iam_get(args)
            elif args.connections_command == "iam":
                groups["iam"].print_help()
                sys.exit(2)
            else:
                groups["connections"].print_help()
                sys.exit(2)
        elif args.command == "endpoints":
            if args.endpoints_command == "list":
                cmd_endpoints_list(args)
            else:
                groups["endpoints"].print_help()
                sys.exit(2)
        elif args.command == "sfdcinstances":
            if args.sfdcinstances_command == "list":
                cmd_sfdcinstances_list(args)
            else:
                groups["sfdcinstances"].print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
