"""
Tests for the item lifecycle: create-with-photo rollback, quantity
interception, confirm/cancel delete and photo replacement.
"""
import os
import random
import struct
import zlib

import pytest

from stash import catalog, lifecycle
from stash.exceptions import PersistenceFailure, ValidationError
from stash.lifecycle import ItemState
from stash.models import Item
from stash.photos import PhotoStore

pytestmark = pytest.mark.lifecycle


def _object_exists(store: PhotoStore, url: str) -> bool:
    return store.storage.exists(store.object_name(store.key_from_url(url)))


def _png_chunk(tag: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", zlib.crc32(tag + data))


def _png_header(width: int, height: int) -> bytes:
    """Signature, IHDR and empty IDAT/IEND: enough for Pillow to read the size."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (b"\x89PNG\r\n\x1a\n" + _png_chunk(b"IHDR", ihdr)
            + _png_chunk(b"IDAT", b"") + _png_chunk(b"IEND", b""))


class TestCreateWithPhoto:

    def test_create_without_photo(self, user, box):
        result = lifecycle.create_item_with_photo(user.pk, box.pk, "Drill")
        assert result.state is ItemState.ACTIVE
        assert result.item.photo_url is None

    def test_photo_is_stored_under_item_key(self, user, box, photo_store, upload_factory):
        """Photo key is <owner>/<item>/<millis>-<safe name>, recorded on the row."""
        result = lifecycle.create_item_with_photo(
            user.pk, box.pk, "Drill", quantity=2,
            photo=upload_factory(name="my drill!.png"), photos=photo_store,
        )
        item = Item.objects.get(pk=result.item.pk)
        key = photo_store.key_from_url(item.photo_url)
        owner_part, item_part, filename = key.split("/")
        assert owner_part == str(user.pk)
        assert item_part == str(item.pk)
        assert filename.endswith("-my_drill_.jpg")
        assert _object_exists(photo_store, item.photo_url)

    def test_upload_failure_rolls_back_item(self, user, box, failing_photo_store, image_upload):
        """Create succeeds, upload fails: the item must not survive."""
        with pytest.raises(PersistenceFailure):
            lifecycle.create_item_with_photo(
                user.pk, box.pk, "Drill", quantity=1,
                photo=image_upload, photos=failing_photo_store,
            )
        assert list(catalog.list_items(user.pk, box.pk)) == []

    def test_unreadable_image_rolls_back_item(self, user, box, photo_store):
        from django.core.files.uploadedfile import SimpleUploadedFile

        bogus = SimpleUploadedFile("notes.png", b"definitely not an image", content_type="image/png")
        with pytest.raises(ValidationError):
            lifecycle.create_item_with_photo(user.pk, box.pk, "Drill", photo=bogus, photos=photo_store)
        assert not Item.objects.filter(box=box).exists()

    def test_oversized_photo_rolls_back_item(self, user, box, photo_store, image_upload, settings):
        settings.PHOTO_MAX_UPLOAD_MB = 0.00001
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.create_item_with_photo(user.pk, box.pk, "Drill", photo=image_upload, photos=photo_store)
        assert "Upload blocked" in exc_info.value.message
        assert not Item.objects.filter(box=box).exists()

    def test_huge_declared_dimensions_roll_back_item(self, user, box, photo_store):
        """A PNG header claiming 20000x20000 pixels is refused and the row removed."""
        from django.core.files.uploadedfile import SimpleUploadedFile

        bomb = SimpleUploadedFile("huge.png", _png_header(20000, 20000), content_type="image/png")
        with pytest.raises(ValidationError, match="too large"):
            lifecycle.create_item_with_photo(user.pk, box.pk, "Drill", photo=bomb, photos=photo_store)
        assert not Item.objects.filter(box=box).exists()

    def test_unexpected_error_rolls_back_item(self, user, box, photo_store, image_upload, monkeypatch):
        def exploding_prepare(*args, **kwargs):
            raise RuntimeError("decoder crashed")

        monkeypatch.setattr(lifecycle, "prepare_photo", exploding_prepare)
        with pytest.raises(PersistenceFailure, match="decoder crashed"):
            lifecycle.create_item_with_photo(user.pk, box.pk, "Drill", photo=image_upload, photos=photo_store)
        assert not Item.objects.filter(box=box).exists()

    def test_patch_failure_removes_uploaded_photo(self, user, box, photo_store, image_upload, monkeypatch):
        """If the photo_url update fails, both the object and the row are removed."""
        def broken_update(*args, **kwargs):
            raise PersistenceFailure("update failed")

        monkeypatch.setattr(catalog, "update_item", broken_update)
        with pytest.raises(PersistenceFailure):
            lifecycle.create_item_with_photo(user.pk, box.pk, "Drill", photo=image_upload, photos=photo_store)

        assert not Item.objects.filter(box=box).exists()
        root = photo_store.storage.path("item-photos")
        assert [f for _, _, files in os.walk(root) for f in files] == []


class TestQuantity:
    """Quantity changes never persist a 0."""

    def test_increment(self, user, items):
        result = lifecycle.adjust_quantity(user.pk, items[0].pk, delta=1)
        assert result.state is ItemState.ACTIVE
        assert Item.objects.get(pk=items[0].pk).quantity == 2

    def test_decrement_to_zero_asks_for_confirmation(self, user, items):
        result = lifecycle.adjust_quantity(user.pk, items[0].pk, delta=-1)
        assert result.state is ItemState.PENDING_DELETE
        assert result.requested_quantity == 0
        assert Item.objects.get(pk=items[0].pk).quantity == 1

    def test_direct_set_zero_asks_for_confirmation(self, user, items):
        result = lifecycle.adjust_quantity(user.pk, items[2].pk, value="0")
        assert result.state is ItemState.PENDING_DELETE
        assert Item.objects.get(pk=items[2].pk).quantity == 5

    def test_large_decrement_clamps_at_zero(self, user, items):
        result = lifecycle.adjust_quantity(user.pk, items[1].pk, delta=-10)
        assert result.state is ItemState.PENDING_DELETE
        assert Item.objects.get(pk=items[1].pk).quantity == 2

    def test_direct_set_floors(self, user, items):
        lifecycle.adjust_quantity(user.pk, items[0].pk, value="7.9")
        assert Item.objects.get(pk=items[0].pk).quantity == 7

    def test_random_adjustments_never_store_zero(self, user, items):
        """Whatever the sequence of steps, an active item never has quantity 0."""
        rng = random.Random(1234)
        item_id = items[1].pk
        for _ in range(200):
            result = lifecycle.adjust_quantity(user.pk, item_id, delta=rng.choice([-3, -1, 1, 2]))
            if result.state is ItemState.PENDING_DELETE:
                lifecycle.cancel_delete(user.pk, item_id)
            assert Item.objects.get(pk=item_id).quantity >= 1
        assert not Item.objects.filter(quantity=0).exists()


class TestDeleteConfirmation:

    def test_cancel_restores_persisted_quantity(self, user, items):
        lifecycle.adjust_quantity(user.pk, items[1].pk, delta=-2)
        result = lifecycle.cancel_delete(user.pk, items[1].pk)
        assert result.state is ItemState.ACTIVE
        assert result.item.quantity == 2

    def test_confirm_removes_photo_then_row(self, user, box, photo_store, image_upload):
        created = lifecycle.create_item_with_photo(user.pk, box.pk, "Drill", photo=image_upload, photos=photo_store)
        url = created.item.photo_url
        assert _object_exists(photo_store, url)

        result = lifecycle.confirm_delete(user.pk, created.item.pk, photos=photo_store)
        assert result.state is ItemState.DELETED
        assert result.warnings == []
        assert not Item.objects.filter(pk=created.item.pk).exists()
        assert not _object_exists(photo_store, url)

    def test_photo_removal_failure_is_a_warning(self, user, items, failing_storage_factory):
        """The row is deleted even when its photo cannot be removed."""
        store = PhotoStore(storage=failing_storage_factory(fail_marker="stuck"), bucket="item-photos")
        Item.objects.filter(pk=items[0].pk).update(photo_url=f"/media/item-photos/{user.pk}/{items[0].pk}/1-stuck.jpg")

        result = lifecycle.confirm_delete(user.pk, items[0].pk, photos=store)
        assert result.state is ItemState.DELETED
        assert len(result.warnings) == 1
        assert not Item.objects.filter(pk=items[0].pk).exists()


class TestEdit:

    def test_edit_with_zero_quantity_changes_nothing(self, user, items):
        result = lifecycle.save_item_edit(user.pk, items[0].pk, name="Renamed", description=None, quantity=0)
        assert result.state is ItemState.PENDING_DELETE
        item = Item.objects.get(pk=items[0].pk)
        assert (item.name, item.quantity) == ("Drill", 1)

    def test_edit_without_photo(self, user, items):
        result = lifecycle.save_item_edit(user.pk, items[0].pk, name="Cordless drill", description="18V", quantity="3")
        assert result.state is ItemState.ACTIVE
        assert (result.item.name, result.item.description, result.item.quantity) == ("Cordless drill", "18V", 3)

    def test_blank_quantity_keeps_current(self, user, items):
        result = lifecycle.save_item_edit(user.pk, items[2].pk, name="Screwdrivers", description="", quantity="")
        assert result.item.quantity == 5

    def test_photo_replace(self, user, box, photo_store, upload_factory):
        """New photo stored and recorded; old object removed."""
        created = lifecycle.create_item_with_photo(
            user.pk, box.pk, "Drill", photo=upload_factory(name="old.png"), photos=photo_store,
        )
        old_url = created.item.photo_url

        result = lifecycle.save_item_edit(
            user.pk, created.item.pk, name="Drill", description=None, quantity=1,
            photo=upload_factory(name="new.png", color=(0, 0, 255)), photos=photo_store,
        )
        new_url = result.item.photo_url
        assert new_url != old_url
        assert new_url.endswith("-new.jpg")
        assert _object_exists(photo_store, new_url)
        assert not _object_exists(photo_store, old_url)
        assert result.warnings == []

    def test_failed_replace_keeps_old_photo_url(self, user, items, failing_photo_store, image_upload):
        """Upload failure leaves the record untouched."""
        old_url = f"/media/item-photos/{user.pk}/{items[0].pk}/1-old.jpg"
        Item.objects.filter(pk=items[0].pk).update(photo_url=old_url)

        with pytest.raises(PersistenceFailure):
            lifecycle.save_item_edit(
                user.pk, items[0].pk, name="Changed", description=None, quantity=4,
                photo=image_upload, photos=failing_photo_store,
            )

        item = Item.objects.get(pk=items[0].pk)
        assert item.photo_url == old_url
        assert (item.name, item.quantity) == ("Drill", 1)

    def test_old_photo_removal_failure_is_a_warning(self, user, items, failing_storage_factory, image_upload):
        store = PhotoStore(storage=failing_storage_factory(fail_uploads=False, fail_marker="stuck"), bucket="item-photos")
        Item.objects.filter(pk=items[0].pk).update(photo_url=f"/media/item-photos/{user.pk}/{items[0].pk}/1-stuck.jpg")

        result = lifecycle.save_item_edit(
            user.pk, items[0].pk, name="Drill", description=None, quantity=1,
            photo=image_upload, photos=store,
        )
        assert result.item.photo_url.endswith("-drill.jpg")
        assert len(result.warnings) == 1
