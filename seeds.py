from carrental import create_app
from carrental.models.store import Store
from carrental.utils.constants import Role, VehicleStatus
from carrental.utils.security import generate_hash


def ensure_user(store: Store, username: str, password: str, role: str, **profile):
    """
    Ensure a user with `username` exists in the store.
    - If exists: update password hash and role (idempotent).
    - If not:   create a new user.
    """
    u = store.find_user(username)
    if u:
        store.update_user(u["user_id"], password_hash=generate_hash(password), role=role)
        return u["user_id"]
    return store.create_user(username, generate_hash(password), role, **profile)


DEMO_CARS = [
    {"make": "Toyota", "model": "Corolla", "year": 2022, "price_per_day": 45, "transmission": "automatic",
     "seats": 5, "fuel_type": "petrol", "location": "Auckland"},
    {"make": "Honda", "model": "Civic", "year": 2021, "price_per_day": 50, "transmission": "automatic",
     "seats": 5, "fuel_type": "petrol", "location": "Wellington", "min_days": 2},
    {"make": "Tesla", "model": "Model 3", "year": 2023, "price_per_day": 120, "transmission": "automatic",
     "seats": 5, "fuel_type": "electric", "location": "Auckland", "min_days": 2, "max_days": 14},
    {"make": "Suzuki", "model": "Swift", "year": 2019, "price_per_day": 35, "transmission": "manual",
     "seats": 4, "fuel_type": "petrol", "location": "Christchurch"},
]


def main():
    app = create_app()
    with app.app_context():
        store = Store.instance()

        # ---- Admin / Staff / Customer demo accounts ----
        ensure_user(store, "admin", "Admin123", Role.ADMIN)
        ensure_user(store, "staff", "Staff123", Role.STAFF)
        ensure_user(store, "customer", "Customer123", Role.CUSTOMER,
                    name="Demo Customer", email="customer@example.com")

        # ---- Demo vehicles (create only if none exist) ----
        if not store.vehicles:
            for car in DEMO_CARS:
                store.create_vehicle(dict(car, status=VehicleStatus.ACTIVE, features=[], images=[]))

        store.save()

        print("Seed complete.")
        print("Admin login:     admin / Admin123")
        print("Staff login:     staff / Staff123")
        print("Customer login:  customer / Customer123")


if __name__ == "__main__":
    main()
