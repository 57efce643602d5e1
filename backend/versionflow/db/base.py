# Import all the models, so that Base has them before being
# imported by Alembic
from versionflow.db.base_class import Base  # noqa

# Tracker entities the versioning engine reads from
from versionflow.models.tracker import Project, Repository, Issue, Commit, PullRequest  # noqa

# Versioning entities owned by the engine
from versionflow.models.version import Version, VersionIssue, Release, VersionFile  # noqa
