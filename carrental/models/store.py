import atexit
import logging
import os
import pickle
import threading
import uuid
from datetime import date, datetime, timezone
from pathlib import Path

from carrental.exceptions import DateConflictError, DuplicateReviewError, StorageConflictError
from carrental.models.availability import DateRange, overlaps
from carrental.utils.constants import BookingStatus, Role
from carrental.utils.security import generate_hash

log = logging.getLogger(__name__)

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_PATH = Path(os.getenv("RENTAL_DATA_PATH") or BASE_DIR / "data.pkl")

COLLECTIONS = ("users", "vehicles", "bookings", "blocks", "maintenance", "notifications", "reviews")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _range(rec: dict) -> DateRange:
    return DateRange(date.fromisoformat(rec["start_date"]), date.fromisoformat(rec["end_date"]))


class Store:
    _inst = None
    _inst_lock = threading.Lock()
    _atexit_registered = False

    def __init__(self, path: str | os.PathLike | None = None):
        self.path = str(path or DEFAULT_DATA_PATH)
        self.users: dict[str, dict] = {}
        self.vehicles: dict[str, dict] = {}
        self.bookings: dict[str, dict] = {}
        self.blocks: dict[str, dict] = {}
        self.maintenance: dict[str, dict] = {}
        self.notifications: dict[str, dict] = {}
        self.reviews: dict[str, dict] = {}
        self._rw = threading.RLock()

        log.info("[Store] Using file: %s", self.path)
        self._load()

        # Default admin account:
        # Created only when the file does not exist or holds no users
        # (to avoid clobbering seeded or test data)
        if not self.users:
            uid = str(uuid.uuid4())
            self.users[uid] = {
                "user_id": uid,
                "username": "admin",
                "password_hash": generate_hash("Admin123"),
                "role": Role.ADMIN,
                "created_at": _now_iso(),
            }
            self._dump()

        # Automatically save on exit (skipped in test environments)
        if not Store._atexit_registered and os.getenv("APP_ENV") != "test":
            atexit.register(self.save)
            Store._atexit_registered = True

    # ---------- Singleton ----------
    @classmethod
    def instance(cls, path: str | os.PathLike | None = None):
        """Return the global singleton instance of Store."""
        with cls._inst_lock:
            if cls._inst is None:
                cls._inst = Store(path or DEFAULT_DATA_PATH)
        return cls._inst

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError) as e:
            log.warning("[Store] Load failed (%s); starting empty.", e)
            return

        if isinstance(data, dict):
            for name in COLLECTIONS:
                setattr(self, name, data.get(name, {}) or {})
            log.info(
                "[Store] Loaded: users=%d, vehicles=%d, bookings=%d, blocks=%d",
                len(self.users), len(self.vehicles), len(self.bookings), len(self.blocks))
        else:
            # Handle incompatible data format: backup the old file and start empty
            bak = self.path + ".bak"
            os.replace(self.path, bak)
            log.warning("[Store] Incompatible store (%s); backed up to %s. Starting empty.",
                        type(data).__name__, bak)

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp = self.path + ".tmp"
        payload = {name: getattr(self, name) for name in COLLECTIONS}
        with open(tmp, "wb") as f:
            pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def save(self):
        """Thread-safe save method."""
        with self._rw:
            log.debug("[Store] Saving to %s ...", self.path)
            self._dump()

    def values(self, collection: str) -> list[dict]:
        """Snapshot of one collection's records, safe to iterate while others write."""
        with self._rw:
            return list(getattr(self, collection).values())

    def clear(self):
        """Drop every record (used by reset_data.py)."""
        with self._rw:
            for name in COLLECTIONS:
                getattr(self, name).clear()
            self._dump()

    # ---------- Users ----------
    def user_exists(self, username: str) -> bool:
        """Return True if the given username already exists."""
        return self.find_user(username) is not None

    def find_user(self, username: str) -> dict | None:
        """Find a user by username."""
        for u in self.values("users"):
            if u["username"] == username:
                return u
        return None

    def find_user_by_email(self, email: str) -> dict | None:
        email = (email or "").strip().lower()
        for u in self.values("users"):
            if (u.get("email") or "").lower() == email:
                return u
        return None

    def get_user(self, user_id: str) -> dict | None:
        """Get user data by user_id."""
        return self.users.get(user_id)

    def users_with_roles(self, roles) -> list[dict]:
        return [u for u in self.values("users") if u.get("role") in roles]

    def create_user(self, username: str, password_hash: str, role: str, **profile) -> str:
        """Create a new user and return its ID."""
        with self._rw:
            if self.user_exists(username):
                raise ValueError("Username already exists")
            uid = str(uuid.uuid4())
            self.users[uid] = {
                "user_id": uid,
                "username": username,
                "password_hash": password_hash,
                "role": role,
                "name": profile.get("name"),
                "email": profile.get("email"),
                "phone": profile.get("phone"),
                "created_at": _now_iso(),
            }
            self._dump()
            return uid

    def update_user(self, user_id: str, **updates) -> bool:
        with self._rw:
            if user_id not in self.users:
                return False
            self.users[user_id].update(updates)
            self._dump()
            return True

    def delete_user(self, user_id: str) -> bool:
        """Delete a user by ID."""
        with self._rw:
            if user_id in self.users:
                del self.users[user_id]
                self._dump()
                return True
            return False

    # ---------- Vehicles ----------
    def create_vehicle(self, data: dict) -> str:
        """Create a new vehicle record and return its ID."""
        with self._rw:
            vid = str(uuid.uuid4())
            self.vehicles[vid] = dict(data, vehicle_id=vid, created_at=_now_iso())
            self._dump()
            return vid

    def get_vehicle(self, vehicle_id: str) -> dict | None:
        """Get vehicle information by ID."""
        return self.vehicles.get(str(vehicle_id))

    def update_vehicle(self, vehicle_id: str, **updates) -> bool:
        """Update vehicle attributes; return True if updated successfully."""
        with self._rw:
            vid = str(vehicle_id)
            if vid not in self.vehicles:
                return False
            self.vehicles[vid].update({k: v for k, v in updates.items() if v is not None})
            self._dump()
            return True

    def delete_vehicle(self, vehicle_id: str) -> bool:
        """Delete a vehicle by ID."""
        with self._rw:
            if vehicle_id in self.vehicles:
                del self.vehicles[vehicle_id]
                self._dump()
                return True
            return False

    # ---------- Bookings ----------
    def bookings_for_vehicle(self, vehicle_id: str) -> list[dict]:
        return [b for b in self.values("bookings") if b.get("vehicle_id") == vehicle_id]

    def _overlapping(self, collection: str, vehicle_id: str, rng: DateRange, statuses=None,
                     exclude: str | None = None) -> bool:
        """Caller holds self._rw."""
        for rec in getattr(self, collection).values():
            if rec.get("vehicle_id") != vehicle_id:
                continue
            if exclude is not None and rec.get("booking_id") == exclude:
                continue
            if statuses is not None and rec.get("status") not in statuses:
                continue
            if overlaps(rng, _range(rec)):
                return True
        return False

    def insert_booking(self, record: dict) -> str:
        """
        Insert a booking unless an active booking of the same vehicle already
        occupies any of its days. The check and the insert run under one lock,
        so of two racing requests for overlapping dates only one is stored;
        the other gets StorageConflictError.
        """
        new_range = _range(record)
        with self._rw:
            if self._overlapping("bookings", record["vehicle_id"], new_range, BookingStatus.ACTIVE):
                raise StorageConflictError()
            bid = str(uuid.uuid4())
            self.bookings[bid] = dict(record, booking_id=bid, created_at=_now_iso(), updated_at=_now_iso())
            self._dump()
            return bid

    def confirm_booking(self, booking_id: str) -> bool:
        """
        Move a booking to 'confirmed' unless a block or another active booking
        now covers its days. Checked under the lock that create_block takes.
        """
        with self._rw:
            b = self.bookings.get(booking_id)
            if not b:
                return False
            rng = _range(b)
            if (self._overlapping("blocks", b["vehicle_id"], rng)
                    or self._overlapping("bookings", b["vehicle_id"], rng, BookingStatus.ACTIVE, exclude=booking_id)):
                raise DateConflictError("Dates are no longer free, booking cannot be confirmed")
            b.update(status=BookingStatus.CONFIRMED, updated_at=_now_iso())
            self._dump()
            return True

    def update_booking(self, booking_id: str, updates: dict) -> bool:
        """Update an existing booking by ID."""
        with self._rw:
            if booking_id in self.bookings:
                self.bookings[booking_id].update(updates, updated_at=_now_iso())
                self._dump()
                return True
            return False

    # ---------- Unavailability blocks ----------
    def blocks_for_vehicle(self, vehicle_id: str) -> list[dict]:
        out = [b for b in self.values("blocks") if b.get("vehicle_id") == vehicle_id]
        out.sort(key=lambda b: b.get("start_date") or "")
        return out

    def create_block(self, record: dict) -> str:
        """Store a block unless a confirmed booking of the vehicle overlaps it."""
        rng = _range(record)
        with self._rw:
            if self._overlapping("bookings", record["vehicle_id"], rng, {BookingStatus.CONFIRMED}):
                raise DateConflictError("Confirmed booking exists in this range")
            bid = str(uuid.uuid4())
            self.blocks[bid] = dict(record, block_id=bid, created_at=_now_iso())
            self._dump()
            return bid

    def delete_block(self, block_id: str, vehicle_id: str) -> bool:
        with self._rw:
            blk = self.blocks.get(block_id)
            if not blk or blk.get("vehicle_id") != vehicle_id:
                return False
            del self.blocks[block_id]
            self._dump()
            return True

    # ---------- Maintenance ----------
    def create_maintenance(self, record: dict) -> str:
        with self._rw:
            rid = str(uuid.uuid4())
            self.maintenance[rid] = dict(record, record_id=rid, created_at=_now_iso(), updated_at=_now_iso())
            self._dump()
            return rid

    def update_maintenance(self, record_id: str, updates: dict) -> bool:
        with self._rw:
            if record_id not in self.maintenance:
                return False
            self.maintenance[record_id].update(updates, updated_at=_now_iso())
            self._dump()
            return True

    def delete_maintenance(self, record_id: str) -> bool:
        with self._rw:
            if record_id in self.maintenance:
                del self.maintenance[record_id]
                self._dump()
                return True
            return False

    # ---------- Notifications ----------
    def add_notifications(self, rows: list[dict]) -> list[str]:
        with self._rw:
            ids = []
            for row in rows:
                nid = str(uuid.uuid4())
                self.notifications[nid] = dict(row, notification_id=nid, read=False, created_at=_now_iso())
                ids.append(nid)
            self._dump()
            return ids

    def update_notification(self, notification_id: str, updates: dict) -> bool:
        with self._rw:
            if notification_id not in self.notifications:
                return False
            self.notifications[notification_id].update(updates)
            self._dump()
            return True

    # ---------- Reviews ----------
    def reviews_for_vehicle(self, vehicle_id: str) -> list[dict]:
        return [r for r in self.values("reviews") if r.get("vehicle_id") == vehicle_id]

    def insert_review(self, record: dict) -> str:
        """One review per booking; a second insert raises DuplicateReviewError."""
        with self._rw:
            if any(r.get("booking_id") == record["booking_id"] for r in self.reviews.values()):
                raise DuplicateReviewError()
            rid = str(uuid.uuid4())
            self.reviews[rid] = dict(record, review_id=rid, created_at=_now_iso())
            self._dump()
            return rid
