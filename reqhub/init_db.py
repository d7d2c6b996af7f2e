from sqlmodel import SQLModel
from reqhub.database import engine

import reqhub.models.user  # noqa
import reqhub.models.project  # noqa
import reqhub.models.requirement  # noqa
import reqhub.models.asset  # noqa
import reqhub.models.notification  # noqa
import reqhub.models.activity_log  # noqa
import reqhub.models.password_reset  # noqa


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)

if __name__ == "__main__":
    create_db_and_tables()
