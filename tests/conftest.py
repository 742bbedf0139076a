"""
Pytest configuration and fixtures for BoxStash tests.
"""
import io

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.storage import FileSystemStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from stash.models import Box, InventoryMember, Item, Location, MemberRole
from stash.photos import PhotoStore

User = get_user_model()


class FailingStorage(FileSystemStorage):
    """Storage whose uploads fail, and whose deletes fail for names containing `fail_marker`."""

    def __init__(self, *args, fail_uploads=True, fail_marker=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_uploads = fail_uploads
        self.fail_marker = fail_marker

    def _save(self, name, content):
        if self.fail_uploads:
            raise OSError("simulated network error")
        return super()._save(name, content)

    def delete(self, name):
        if self.fail_marker and self.fail_marker in name:
            raise OSError("simulated network error")
        return super().delete(name)


def make_image_bytes(size=(64, 48), color=(200, 30, 30), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_upload(name="drill.png", **kwargs) -> SimpleUploadedFile:
    return SimpleUploadedFile(name, make_image_bytes(**kwargs), content_type="image/png")


@pytest.fixture(autouse=True)
def _isolated_settings(settings, tmp_path):
    """Local-memory cache, media under tmp_path, no static manifest, fast hashing."""
    settings.CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
    settings.STORAGES = {
        **settings.STORAGES,
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    }
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.MEDIA_URL = "/media/"
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.PHOTO_BUCKET = "item-photos"
    settings.PHOTO_MAX_UPLOAD_MB = 1.0
    # LocMemCache data outlives the backend instance; scope and AppConfig entries must not leak.
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    """The inventory owner."""
    return User.objects.create_user(
        username='testuser',
        email='test@example.com',
        password='testpass123'
    )


@pytest.fixture
def admin_user(db):
    """Create an admin user."""
    return User.objects.create_superuser(
        username='admin',
        email='admin@example.com',
        password='adminpass123'
    )


@pytest.fixture
def other_user(db):
    """An unrelated user with their own inventory."""
    return User.objects.create_user(
        username='otheruser',
        email='other@example.com',
        password='otherpass123'
    )


@pytest.fixture
def bob(db):
    """A user who has not joined anyone's inventory yet."""
    return User.objects.create_user(
        username='bob',
        email='bob@x.com',
        password='bobpass123'
    )


@pytest.fixture
def editor(db, user):
    """An editor member of `user`'s inventory."""
    member = User.objects.create_user(username='editor', email='editor@example.com', password='editorpass123')
    InventoryMember.objects.create(owner=user, member=member, member_email=member.email, role=MemberRole.EDITOR)
    return member


@pytest.fixture
def viewer(db, user):
    """A view-only member of `user`'s inventory."""
    member = User.objects.create_user(username='viewer', email='viewer@example.com', password='viewerpass123')
    InventoryMember.objects.create(owner=user, member=member, member_email=member.email, role=MemberRole.VIEWER)
    return member


@pytest.fixture
def location(user):
    return Location.objects.create(owner=user, name='Garage')


@pytest.fixture
def box(user, location):
    return Box.objects.create(owner=user, code='BOX-001', name='Tools', location=location)


@pytest.fixture
def other_box(user, location):
    return Box.objects.create(owner=user, code='BOX-002', name='Paint', location=location)


@pytest.fixture
def items(user, box):
    """Three items in `box`."""
    return [
        Item.objects.create(owner=user, box=box, name=name, quantity=qty)
        for name, qty in (('Drill', 1), ('Hammer', 2), ('Screwdriver set', 5))
    ]


@pytest.fixture
def photo_storage(tmp_path):
    return FileSystemStorage(location=str(tmp_path / "store"), base_url="/media/")


@pytest.fixture
def photo_store(photo_storage):
    return PhotoStore(storage=photo_storage, bucket="item-photos")


@pytest.fixture
def failing_photo_store(tmp_path):
    storage = FailingStorage(location=str(tmp_path / "failing"), base_url="/media/")
    return PhotoStore(storage=storage, bucket="item-photos")


@pytest.fixture
def image_upload():
    return make_upload()


@pytest.fixture
def authenticated_client(client, user):
    """Return a Django test client with authenticated user."""
    client.force_login(user)
    return client


@pytest.fixture
def admin_client(client, admin_user):
    """Return a Django test client with authenticated admin."""
    client.force_login(admin_user)
    return client


@pytest.fixture
def upload_factory():
    """Build an uploaded image file: upload_factory(name=..., size=(w, h))."""
    return make_upload


@pytest.fixture
def failing_storage_factory(tmp_path):
    """Build a FailingStorage rooted under tmp_path."""
    def _make(**kwargs):
        return FailingStorage(location=str(tmp_path / "partial"), base_url="/media/", **kwargs)
    return _make
