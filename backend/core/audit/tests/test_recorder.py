from unittest import mock

from django.db import transaction
from django.test import SimpleTestCase, TestCase, override_settings

from audit.services import (
    AuditDraft,
    AuditRecorder,
    _run_in_background,
    _run_inline,
    build_audit_draft,
    default_dispatcher,
    normalize_ip_address,
    resolve_entity_id,
)


def draft_kwargs(**overrides):
    values = {
        "actor_user_id": 7,
        "method_class": "POST",
        "entity_type": "commission.CommissionRule",
        "payload": {"insurer_id": 10, "rate_percentage": "15.00"},
        "result_payload": {"id": 42, "insurer_id": 10},
    }
    values.update(overrides)
    return values


class BuildAuditDraftTests(SimpleTestCase):
    def test_create_keeps_submitted_payload(self):
        draft = build_audit_draft(**draft_kwargs())

        self.assertEqual(draft.action, "CREATE")
        self.assertEqual(draft.entity_id, 42)
        self.assertEqual(draft.new_values, {"insurer_id": 10, "rate_percentage": "15.00"})
        self.assertIsNone(draft.previous_values)

    def test_method_mapping(self):
        self.assertEqual(build_audit_draft(**draft_kwargs(method_class="PUT")).action, "UPDATE")
        self.assertEqual(build_audit_draft(**draft_kwargs(method_class="patch")).action, "UPDATE")
        self.assertEqual(build_audit_draft(**draft_kwargs(method_class="DELETE")).action, "DELETE")
        self.assertEqual(build_audit_draft(**draft_kwargs(method_class="update")).action, "UPDATE")

    def test_reads_never_produce_entries(self):
        for method in ("GET", "HEAD", "OPTIONS", "READ", "", None):
            self.assertIsNone(build_audit_draft(**draft_kwargs(method_class=method)))

    def test_failed_operation_produces_no_entry(self):
        self.assertIsNone(build_audit_draft(**draft_kwargs(succeeded=False)))

    def test_anonymous_actor_produces_no_entry(self):
        self.assertIsNone(build_audit_draft(**draft_kwargs(actor_user_id=None)))

    def test_delete_omits_new_values(self):
        draft = build_audit_draft(
            **draft_kwargs(
                method_class="DELETE",
                entity_id="42",
                payload={"ignored": True},
                result_payload=None,
                previous_values={"rate_percentage": "15.00"},
            )
        )

        self.assertIsNone(draft.new_values)
        self.assertEqual(draft.previous_values, {"rate_percentage": "15.00"})
        self.assertEqual(draft.entity_id, 42)

    def test_blank_request_metadata_is_normalized(self):
        draft = build_audit_draft(**draft_kwargs(ip_address="", user_agent="", request_method="post"))

        self.assertIsNone(draft.ip_address)
        self.assertIsNone(draft.user_agent)
        self.assertEqual(draft.request_method, "POST")


class NormalizeIpAddressTests(SimpleTestCase):
    def test_ipv4_is_kept(self):
        self.assertEqual(normalize_ip_address(" 10.0.0.1 "), "10.0.0.1")

    def test_ipv6_is_compressed_and_lowercased(self):
        self.assertEqual(normalize_ip_address("2001:0DB8:0000:0000:0000:0000:0000:0001"), "2001:db8::1")

    def test_invalid_values_become_none(self):
        for value in ("not-an-ip", "999.1.1.1", "", None):
            self.assertIsNone(normalize_ip_address(value))

    def test_draft_caps_stored_text_fields(self):
        draft = build_audit_draft(
            **draft_kwargs(entity_type="x" * 300, request_path="/" + "a" * 400, ip_address="not-an-ip")
        )

        self.assertEqual(len(draft.entity_type), 120)
        self.assertEqual(len(draft.request_path), 255)
        self.assertIsNone(draft.ip_address)


class ResolveEntityIdTests(SimpleTestCase):
    def test_explicit_id_wins(self):
        self.assertEqual(resolve_entity_id(5, {"id": 9}), 5)
        self.assertEqual(resolve_entity_id("5", {"id": 9}), 5)

    def test_nested_result_id(self):
        self.assertEqual(resolve_entity_id(None, {"data": {"id": 11}, "id": 9}), 11)

    def test_top_level_result_id(self):
        self.assertEqual(resolve_entity_id(None, {"data": {"name": "x"}, "id": "9"}), 9)

    def test_falls_back_to_unknown(self):
        self.assertEqual(resolve_entity_id(None, None), 0)
        self.assertEqual(resolve_entity_id(None, ["not", "a", "mapping"]), 0)
        self.assertEqual(resolve_entity_id("abc", {"id": True}), 0)
        self.assertEqual(resolve_entity_id(-3, {"id": "x"}), 0)

    def test_invalid_explicit_id_falls_through_to_result(self):
        self.assertEqual(resolve_entity_id("abc", {"id": 4}), 4)


class AuditRecorderTests(TestCase):
    def test_writes_once_after_commit(self):
        sink = mock.Mock()
        recorder = AuditRecorder(sink=sink, dispatcher=_run_inline)

        with self.captureOnCommitCallbacks(execute=True):
            recorder.record(**draft_kwargs())
            sink.assert_not_called()

        sink.assert_called_once()
        draft = sink.call_args.args[0]
        self.assertIsInstance(draft, AuditDraft)
        self.assertEqual(draft.action, "CREATE")

    def test_rolled_back_transaction_writes_nothing(self):
        sink = mock.Mock()
        recorder = AuditRecorder(sink=sink, dispatcher=_run_inline)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            try:
                with transaction.atomic():
                    recorder.record(**draft_kwargs())
                    raise RuntimeError("business failure")
            except RuntimeError:
                pass

        self.assertEqual(callbacks, [])
        sink.assert_not_called()

    def test_read_is_never_scheduled(self):
        sink = mock.Mock()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            AuditRecorder(sink=sink).record(**draft_kwargs(method_class="GET"))

        self.assertEqual(callbacks, [])
        sink.assert_not_called()

    def test_sink_failure_is_logged_and_swallowed(self):
        sink = mock.Mock(side_effect=RuntimeError("database unavailable"))
        recorder = AuditRecorder(sink=sink, dispatcher=_run_inline)

        with self.assertLogs("audit.services", level="ERROR") as logs:
            with self.captureOnCommitCallbacks(execute=True):
                recorder.record(**draft_kwargs())

        sink.assert_called_once()
        self.assertIn("audit.record.failed", logs.output[0])

    def test_sink_failure_is_not_retried(self):
        sink = mock.Mock(side_effect=RuntimeError("database unavailable"))
        recorder = AuditRecorder(sink=sink, dispatcher=_run_inline)

        with self.assertLogs("audit.services", level="ERROR"):
            with self.captureOnCommitCallbacks(execute=True):
                recorder.record(**draft_kwargs())

        self.assertEqual(sink.call_count, 1)

    def test_custom_dispatcher_receives_the_write(self):
        sink = mock.Mock()
        jobs = []
        recorder = AuditRecorder(sink=sink, dispatcher=jobs.append)

        with self.captureOnCommitCallbacks(execute=True):
            recorder.record(**draft_kwargs())

        self.assertEqual(len(jobs), 1)
        sink.assert_not_called()
        jobs[0]()
        sink.assert_called_once()


class DefaultDispatcherTests(SimpleTestCase):
    @override_settings(AUDIT_WRITE_MODE="inline")
    def test_inline_mode(self):
        self.assertIs(default_dispatcher(), _run_inline)

    @override_settings(AUDIT_WRITE_MODE="background")
    def test_background_mode(self):
        self.assertIs(default_dispatcher(), _run_in_background)
