"""
Shared fakes for the geofence attendance tests.
No MongoDB, no network: every collaborator is an in-memory double.
"""
import copy
from typing import Optional

import pytest

from models.geofence import Coordinate, GeofenceConfig, LocationFix

OFFICE = Coordinate(latitude=1.3521, longitude=103.8198)
NEAR_OFFICE = Coordinate(latitude=1.3601, longitude=103.8198)   # ~889 m north
FAR_FROM_OFFICE = Coordinate(latitude=1.3700, longitude=103.8198)  # ~1987 m north


# ============================================================
# MongoDB doubles
# ============================================================

def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(k) == v for k, v in query.items())


def _project(doc: dict, projection: Optional[dict]) -> dict:
    doc = copy.deepcopy(doc)
    doc.pop("_id", None)
    if not projection:
        return doc
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        return {k: doc[k] for k in included if k in doc}
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


class FakeCursor:

    def __init__(self, docs):
        self.docs = docs

    def sort(self, field, direction=1):
        self.docs = sorted(self.docs, key=lambda d: d.get(field) or "", reverse=direction < 0)
        return self

    async def to_list(self, length):
        return self.docs[:length]


class FakeCollection:

    def __init__(self):
        self.docs = []
        self.fail_with: Optional[Exception] = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def find_one(self, query, projection=None):
        self._check()
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query, projection=None):
        self._check()
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query)])

    async def insert_one(self, doc):
        self._check()
        doc["_id"] = len(self.docs) + 1
        self.docs.append(copy.deepcopy(doc))

    async def update_one(self, query, update, upsert=False):
        self._check()
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return
        if upsert:
            doc = dict(query)
            doc.update(update.get("$set", {}))
            self.docs.append(doc)


class FakeDatabase:

    def __init__(self):
        self._collections = {}

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self._collections.setdefault(name, FakeCollection())


# ============================================================
# Service doubles for the monitor and the validator
# ============================================================

class FakeLocationProvider:

    def __init__(self):
        self.permission = True
        self.fix: Optional[LocationFix] = None
        self.calls = 0

    def place_at(self, point: Coordinate):
        self.fix = LocationFix(latitude=point.latitude, longitude=point.longitude, accuracy=10.0)

    def request_permission(self, username):
        return self.permission

    def has_permission(self, username):
        return self.permission

    async def get_current_location(self, username):
        self.calls += 1
        if not self.permission:
            return None
        return self.fix


class FakeOfficeProvider:

    def __init__(self, office: Optional[GeofenceConfig] = None):
        self.office = office

    async def get_office_location(self):
        return self.office


class FakeConfigService:

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self.fail = False

    async def is_auto_checkout_enabled(self, use_cache=True):
        if self.fail:
            raise RuntimeError("config store down")
        return self.enabled


class FakeAttendanceStore:

    def __init__(self):
        self.records = []
        self.checked_in = True
        self.fail_append = False

    async def append_record(self, record):
        if self.fail_append:
            return None
        self.records.append(record)
        return record

    async def is_user_checked_in(self, username):
        if not self.checked_in:
            return False
        last = [r for r in self.records if r.get("username") == username]
        return not last or last[-1].get("type") == "checkin"


class FakeNotifier:

    def __init__(self):
        self.sent = []
        self.manager_notices = []

    async def notify_user(self, user, notification_type, title, body, metadata=None):
        self.sent.append({"username": user.get("username"), "type": notification_type, "title": title, "body": body})
        return self.sent[-1]

    async def notify_manager(self, employee, distance):
        self.manager_notices.append({"employee": employee.get("username"), "distance": distance})

    def titles(self):
        return [n["title"] for n in self.sent]


class FakePollScheduler:

    def __init__(self):
        self.jobs = {}

    def arm(self, job_id, func, interval_seconds, args=None):
        self.jobs[job_id] = (func, interval_seconds)
        return job_id

    def cancel(self, job_id):
        return self.jobs.pop(job_id, None) is not None

    def is_armed(self, job_id):
        return job_id in self.jobs


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def office_config():
    return GeofenceConfig(center=OFFICE, radius_meters=1000, id="office")


@pytest.fixture
def location_provider():
    provider = FakeLocationProvider()
    provider.place_at(NEAR_OFFICE)
    return provider


@pytest.fixture
def office_provider(office_config):
    return FakeOfficeProvider(office_config)


@pytest.fixture
def config_service():
    return FakeConfigService(enabled=True)


@pytest.fixture
def attendance_store():
    return FakeAttendanceStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def poll_scheduler():
    return FakePollScheduler()


@pytest.fixture
def office_employee():
    return {"username": "sara", "name": "Sara Ali", "work_mode": "in_office", "department": "Sales", "role": "employee"}
