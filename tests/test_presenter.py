import tempfile
import threading
import unittest
from pathlib import Path

from bucket_sync.models import ConflictDecision, PlanMode, ReconciliationPlan, TransferReport
from bucket_sync.presenter import SyncPresenter
from bucket_sync.settings import AppSettings


class FakeSettingsStorage:
    def __init__(self, settings=None):
        self.settings = settings or AppSettings()
        self.saved = []

    def load(self):
        return self.settings

    def save(self, settings):
        self.saved.append(settings)


class FakeController:
    def __init__(self):
        self.is_connected = True
        self.plan_calls = []
        self.execute_calls = []
        self.delete_calls = []
        self.browse_calls = []
        self.fail_with = None

    def browse(self, **kwargs):
        self.browse_calls.append(kwargs)
        if self.fail_with:
            raise self.fail_with
        return "page"

    def plan_download(self, *, bucket_name, selected_keys, listing_of, target_dir, decisions):
        self.plan_calls.append((bucket_name, list(selected_keys), target_dir))
        plan = ReconciliationPlan()
        self.decision = decisions.decide_conflict("request")
        return plan

    def execute_download(self, *, bucket_name, plan, progress_callback=None, cancel_requested=None):
        self.execute_calls.append((bucket_name, plan))
        return TransferReport(reused=2)

    def plan_delete(self, *, bucket_name, selected_keys, listing_of):
        self.delete_calls.append(list(selected_keys))
        return ReconciliationPlan()

    def execute_delete(self, *, bucket_name, plan):
        return TransferReport(mode=PlanMode.DELETE, deleted=["a"])


class SyncPresenterTests(unittest.TestCase):
    def setUp(self):
        self.controller = FakeController()
        self.settings_storage = FakeSettingsStorage(AppSettings(browse_page_size=25))
        self.presenter = SyncPresenter(controller=self.controller, settings_storage=self.settings_storage)
        self.done = threading.Event()

    def wait(self):
        self.assertTrue(self.done.wait(timeout=5))

    def test_browse_uses_configured_page_size(self):
        results = []

        self.presenter.browse(
            bucket_name="bucket-one",
            prefix="docs/",
            on_success=results.append,
            on_error=self.fail,
            on_done=self.done.set,
        )
        self.wait()

        self.assertEqual(["page"], results)
        self.assertEqual(25, self.controller.browse_calls[0]["page_size"])

    def test_errors_are_reported_as_text(self):
        self.controller.fail_with = RuntimeError("listing broke")
        errors = []

        self.presenter.browse(
            bucket_name="bucket-one",
            on_success=lambda page: self.fail("unexpected success"),
            on_error=errors.append,
            on_done=self.done.set,
        )
        self.wait()

        self.assertEqual(["listing broke"], errors)

    def test_download_selection_routes_prompts_and_reports(self):
        prompts = []
        reports = []
        planned = []

        def on_conflict(request, reply):
            prompts.append(request)
            reply(ConflictDecision.SKIP)

        with tempfile.TemporaryDirectory() as tmp:
            self.presenter.download_selection(
                bucket_name="bucket-one",
                selected_keys=["a.txt"],
                listing_of=None,
                target_dir=tmp,
                on_conflict=on_conflict,
                on_rename=lambda request, reply: reply(None),
                on_planned=planned.append,
                on_success=reports.append,
                on_error=self.fail,
                on_done=self.done.set,
            )
            self.wait()

        self.assertEqual(["request"], prompts)
        self.assertEqual(ConflictDecision.SKIP, self.controller.decision)
        self.assertEqual(1, len(planned))
        self.assertEqual(2, reports[0].reused)
        self.assertIsNone(self.presenter._active_channel)

    def test_download_selection_falls_back_to_settings_dir(self):
        self.presenter.save_settings(AppSettings(download_dir="/data/sync"))
        results = []

        self.presenter.download_selection(
            bucket_name="bucket-one",
            selected_keys=["a.txt"],
            listing_of=None,
            on_conflict=lambda request, reply: reply(ConflictDecision.OVERWRITE),
            on_rename=lambda request, reply: reply(None),
            on_success=results.append,
            on_error=self.fail,
            on_done=self.done.set,
        )
        self.wait()

        self.assertEqual("/data/sync", self.controller.plan_calls[0][2])

    def test_download_selection_without_directory_reports_error(self):
        errors = []

        self.presenter.download_selection(
            bucket_name="bucket-one",
            selected_keys=["a.txt"],
            listing_of=None,
            on_conflict=lambda request, reply: None,
            on_rename=lambda request, reply: None,
            on_success=lambda report: self.fail("unexpected success"),
            on_error=errors.append,
            on_done=self.done.set,
        )
        self.wait()

        self.assertEqual(["No download directory configured"], errors)
        self.assertEqual([], self.controller.plan_calls)

    def test_dismiss_pending_prompt_unblocks_planning(self):
        prompt_shown = threading.Event()
        results = []

        self.presenter.download_selection(
            bucket_name="bucket-one",
            selected_keys=["a.txt"],
            listing_of=None,
            target_dir=str(Path("/data")),
            on_conflict=lambda request, reply: prompt_shown.set(),
            on_rename=lambda request, reply: None,
            on_success=results.append,
            on_error=self.fail,
            on_done=self.done.set,
        )
        self.assertTrue(prompt_shown.wait(timeout=5))
        self.assertTrue(self.presenter.dismiss_pending_prompt())
        self.wait()

        self.assertIsNone(self.controller.decision)
        self.assertEqual(1, len(results))

    def test_delete_selection(self):
        reports = []

        self.presenter.delete_selection(
            bucket_name="bucket-one",
            selected_keys=["a"],
            on_success=reports.append,
            on_error=self.fail,
            on_done=self.done.set,
        )
        self.wait()

        self.assertEqual(["a"], reports[0].deleted)
        self.assertEqual([["a"]], self.controller.delete_calls)

    def test_update_last_bucket_respects_setting(self):
        self.presenter.update_last_bucket("bucket-one")
        self.assertEqual([], self.settings_storage.saved)

        self.presenter.save_settings(AppSettings(remember_last_bucket=True))
        self.presenter.update_last_bucket("bucket-one")

        self.assertEqual("bucket-one", self.settings_storage.saved[-1].last_bucket)


if __name__ == "__main__":
    unittest.main()
