from getpass import getpass
from charitydesk import create_app
from charitydesk.extensions import db
from charitydesk.models.user import User


def main():
    app = create_app()
    with app.app_context():
        email = input("Admin email: ").strip().lower()
        name = input("Full name: ").strip()
        phone = input("Phone (optional): ").strip()
        password = getpass("Password: ")

        if len(password) < 8:
            print("Password must be at least 8 characters.")
            return

        # Promote an existing donor account instead of duplicating it
        user = User.query.filter_by(email=email).first()
        if user:
            if user.role == "admin":
                print("User with that email is already an admin.")
                return
            user.role = "admin"
            user.set_password(password)
            db.session.commit()
            print(f"User {email} promoted to admin.")
            return

        user = User(name=name, email=email, phone=phone or None, role="admin")
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        print(f"Admin user {email} created successfully.")

if __name__ == "__main__":
    main()
