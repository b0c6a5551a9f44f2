"""Embedded file store: no external process, always succeeds."""

import logging

from launchpad.datastore.base import DatastoreProvisioner
from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy

logger = logging.getLogger(__name__)


class EmbeddedProvisioner(DatastoreProvisioner):
    """Points the app at a database file in the project root.

    The file itself is created by the app on first use.
    """

    strategy = DatastoreStrategy.EMBEDDED

    def provision(self) -> DatastoreConfig:
        db_path = (self.context.root / self.config.paths.embedded_db).resolve()
        logger.debug("Embedded datastore at %s", db_path)
        return DatastoreConfig(
            strategy=self.strategy,
            connection_string=f"file:{db_path.as_posix()}",
        )
