from __future__ import annotations

from flask import Flask

from ..common.http import current_actor, form_payload, json_body, notifier, ok
from ..container import Container
from ..core.exceptions import SaveInProgressError, ValidationError
from .editor import SectionEditor


def register(app: Flask, container: Container) -> None:
    pages = container.pages

    def _editor(token: str, section: str):
        page = pages.get(token)
        return page, SectionEditor(page, section)

    def _with_file(data: dict, upload) -> dict:
        if upload is not None:
            data["file"] = upload
        return data

    @app.route("/api/pages/<kind>/<entity_id>", methods=["POST"], endpoint="open_page")
    def open_page(kind: str, entity_id: str):
        page = pages.open(kind, entity_id)
        return ok(page.as_dict(), status=201)

    @app.route("/api/pages/<token>", methods=["GET"], endpoint="page_state")
    def page_state(token: str):
        page = pages.get(token)
        with page.lock:
            pages.sync(page)
            return ok(page.as_dict())

    @app.route("/api/pages/<token>", methods=["DELETE"], endpoint="close_page")
    def close_page(token: str):
        discarded = pages.close(token)
        message = "Unsaved changes were discarded" if discarded else ""
        return ok({"discarded": discarded}, message=message)

    @app.route("/api/pages/<token>/form", methods=["PATCH"], endpoint="page_form")
    def page_form(token: str):
        page = pages.get(token)
        with page.lock:
            page.set_fields(json_body())
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/sections/<section>/drafts", methods=["POST"], endpoint="add_draft")
    def add_draft(token: str, section: str):
        page, editor = _editor(token, section)
        with page.lock:
            data, upload = form_payload()
            temp_id = editor.add(_with_file(data, upload))
            return ok({"temp_id": temp_id, "page": page.as_dict()}, status=201)

    @app.route("/api/pages/<token>/sections/<section>/drafts/<temp_id>", methods=["PATCH"], endpoint="edit_draft")
    def edit_draft(token: str, section: str, temp_id: str):
        page, editor = _editor(token, section)
        with page.lock:
            data, upload = form_payload()
            editor.edit(temp_id, _with_file(data, upload))
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/sections/<section>/drafts/<temp_id>", methods=["DELETE"], endpoint="remove_draft")
    def remove_draft(token: str, section: str, temp_id: str):
        page, editor = _editor(token, section)
        with page.lock:
            editor.delete(temp_id)
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/sections/<section>/updates/<record_id>", methods=["PUT"], endpoint="queue_update")
    def queue_update(token: str, section: str, record_id: str):
        page, editor = _editor(token, section)
        with page.lock:
            data, upload = form_payload()
            editor.edit(record_id, _with_file(data, upload))
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/sections/<section>/updates/<record_id>", methods=["DELETE"], endpoint="cancel_update")
    def cancel_update(token: str, section: str, record_id: str):
        page, editor = _editor(token, section)
        with page.lock:
            editor.cancel_update(record_id)
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/sections/<section>/deletes/<record_id>", methods=["POST"], endpoint="queue_delete")
    def queue_delete(token: str, section: str, record_id: str):
        page, editor = _editor(token, section)
        with page.lock:
            editor.delete(record_id)
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/sections/<section>/deletes/<record_id>", methods=["DELETE"], endpoint="cancel_delete")
    def cancel_delete(token: str, section: str, record_id: str):
        page, editor = _editor(token, section)
        with page.lock:
            editor.cancel_delete(record_id)
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/photo", methods=["POST"], endpoint="select_photo")
    def select_photo(token: str):
        page = pages.get(token)
        with page.lock:
            _, upload = form_payload()
            if upload is None:
                raise ValidationError("Please choose an image file")
            if not (upload.content_type or "").startswith("image/"):
                raise ValidationError("Profile photo must be an image")
            page.select_photo(upload)
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/photo", methods=["DELETE"], endpoint="clear_photo")
    def clear_photo(token: str):
        page = pages.get(token)
        with page.lock:
            page.clear_photo()
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/discard", methods=["POST"], endpoint="discard_changes")
    def discard_changes(token: str):
        page = pages.get(token)
        with page.lock:
            page.discard_changes()
            return ok(page.as_dict())

    @app.route("/api/pages/<token>/save", methods=["POST"], endpoint="save_page")
    def save_page(token: str):
        page = pages.get(token)
        if page.saving:
            raise SaveInProgressError("A save is already in progress")
        with page.lock:
            outcome = container.orchestrator.save(page, notifier=notifier(), user_name=current_actor().name)
            pages.sync(page)
            return ok(
                {
                    "mutations": outcome.mutations,
                    "changed_fields": list(outcome.changed_fields),
                    "refreshed": list(outcome.refreshed),
                    "page": page.as_dict(),
                }
            )
