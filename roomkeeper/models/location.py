from roomkeeper.extensions import db

class Location(db.Model):
    __tablename__ = 'locations'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    active = db.Column(db.Boolean, default=True)

    rooms = db.relationship('Room', backref='location', lazy=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


class ProgramType(db.Model):
    __tablename__ = 'program_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    active = db.Column(db.Boolean, default=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}
