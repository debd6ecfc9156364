from roomkeeper.extensions import db

PRIVILEGED_ROLES = ('admin', 'staff')

class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(db.String(20), default='patron') # admin, staff, patron
    # Staff only manage reservations of their own location
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=True)

    @property
    def is_privileged(self):
        return self.role in PRIVILEGED_ROLES

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'location_id': self.location_id
        }
