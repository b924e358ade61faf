"""Input validation for CLI arguments."""
import re
import sys

# Connection ids: lowercase letters, digits and hyphens, starting with a letter
CONNECTION_NAME_PATTERN = r'^[a-z]([a-z0-9-]{0,61}[a-z0-9])?$'


def validate_connection_name(name: str) -> None:
    """
    Validate a connection id matches the Connectors API requirements.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Connection name cannot be empty", file=sys.stderr)
        sys.exit(2)

    if not re.match(CONNECTION_NAME_PATTERN, name):
        print(f"Error: Invalid connection name '{name}'", file=sys.stderr)
        print("\nAllowed characters: lowercase letters, numbers, hyphens (-)", file=sys.stderr)
        print("Must start with a letter, must not end with a hyphen, at most 63 characters", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ pubsub-orders", file=sys.stderr)
        print("  ✓ crm2", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ Orders (uppercase)", file=sys.stderr)
        print("  ✗ my_conn (contains underscore)", file=sys.stderr)
        print("  ✗ 1conn (starts with a digit)", file=sys.stderr)
        sys.exit(2)


def validate_page_size(page_size: int) -> None:
    """
    Validate a list page size. -1 means server default.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if page_size != -1 and page_size <= 0:
        print(f"Error: Invalid page size {page_size}", file=sys.stderr)
        print("\nUse a positive number, or omit --pageSize for the server default.", file=sys.stderr)
        sys.exit(2)
