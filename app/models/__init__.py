# Visitor Pass Service: Database Models
# Import all models here for SQLAlchemy discovery

from app.models.profile import Profile              # noqa
from app.models.visitor_pass import VisitorPass     # noqa
