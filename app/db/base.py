from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Every model module imports Base from here; app.db.models registers them all
