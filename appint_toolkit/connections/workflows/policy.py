"""Failures that connection workflows log and continue past instead of raising.

Both are long-standing behaviors that callers may rely on. Set to False to
make the corresponding failures propagate.
"""

# A folder that cannot be walked during import (missing, unreadable) is logged
# and the import reports success with whatever was created so far.
IGNORE_IMPORT_WALK_ERRORS = True

# Failing to grant pubsub/bigquery/gcs/cloudsql roles is logged as a warning
# and the connection is still created. Secret Manager grants always raise.
IGNORE_CONNECTOR_GRANT_ERRORS = True
