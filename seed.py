from roomkeeper import create_app
from roomkeeper.extensions import db
from roomkeeper.models import Location, ProgramType, User, Room, OperatingSlot, BookingRule
from roomkeeper.utils.timeutil import to_minutes

app = create_app()

with app.app_context():
    db.create_all()

    location = Location.query.filter_by(name='Central Library').first()
    if not location:
        location = Location(name='Central Library')
        db.session.add(location)
        db.session.flush()
        print("Location Central Library created.")

    for name in ['Study Group', 'Tutoring', 'Community Meeting']:
        if not ProgramType.query.filter_by(name=name).first():
            db.session.add(ProgramType(name=name))

    # Users (tokens are issued by the identity provider sharing SECRET_KEY)
    users_data = [
        {"name": "Admin", "email": "admin@library.org", "role": "admin"},
        {"name": "Front Desk", "email": "desk@library.org", "role": "staff", "location_id": location.id},
        {"name": "Pat Ron", "email": "patron@example.com", "role": "patron"},
    ]
    for u_data in users_data:
        if not User.query.filter_by(email=u_data['email']).first():
            db.session.add(User(**u_data))
            print(f"User {u_data['email']} created ({u_data['role']}).")

    # Rooms, open Monday to Friday 09:00-17:00 and Saturday 10:00-14:00
    rooms_data = [
        {"name": "Study Room A", "capacity": 4},
        {"name": "Study Room B", "capacity": 6},
        {"name": "Meeting Room", "capacity": 20},
    ]
    for r_data in rooms_data:
        if Room.query.filter_by(name=r_data['name'], location_id=location.id).first():
            continue
        room = Room(name=r_data['name'], capacity=r_data['capacity'], location_id=location.id)
        for day in range(1, 6):
            room.operating_slots.append(
                OperatingSlot(day_of_week=day, start_minute=to_minutes('09:00'), end_minute=to_minutes('17:00')))
        room.operating_slots.append(
            OperatingSlot(day_of_week=6, start_minute=to_minutes('10:00'), end_minute=to_minutes('14:00')))
        room.booking_rule = BookingRule(grace_period_minutes=15, max_duration_minutes=180, max_advance_days=30)
        db.session.add(room)
        print(f"Room {room.name} created.")

    db.session.commit()
    print("Database seeded successfully.")
