"""
Unit tests for QuizManager: lifecycle, sessions, countdown commits and results.
"""
from threading import Barrier, Thread
import unittest
from unittest.mock import patch

from quiz_arena.core.errors import PersistenceFailure, StaleSubmissionError
from quiz_arena.core.models import LifecycleState, SessionStatus
from quiz_arena.core.quiz_manager import ANSWER_SAVE_ADVISORY, RESULT_SAVE_ADVISORY, QuizManager
from quiz_arena.core.services.question_bank import InMemoryQuestionBank
from quiz_arena.core.services.quiz_store import MemoryQuizStore
from tests.fixtures import FakeClock, ManualTimerFactory, make_questions


class ManagerTestCase(unittest.TestCase):

    def setUp(self):
        self.store = MemoryQuizStore()
        self.timers = ManualTimerFactory()
        self.clock = FakeClock()
        self.manager = QuizManager(
            InMemoryQuestionBank(make_questions("ABC")),
            store=self.store,
            question_duration=10,
            timer_factory=self.timers,
            clock=self.clock,
        )

    def start_and_join(self, user_id="student1"):
        self.manager.start_quiz()
        return self.manager.join_session(user_id)

    def finish_with(self, user_id, choices):
        """Answer every question with ``choices`` (None = skip) and advance."""
        view = self.manager.join_session(user_id)
        for choice in choices:
            if choice is not None:
                self.manager.record_answer(user_id, view.question.id, choice)
            view = self.manager.advance(user_id, view.question.id)
        return view


class TestJoinSession(ManagerTestCase):

    def test_waiting_quiz_keeps_student_idle(self):
        view = self.manager.join_session("student1")

        self.assertIs(view.status, SessionStatus.IDLE)
        self.assertIs(view.lifecycle_state, LifecycleState.WAITING)
        self.assertIsNone(view.question)
        self.assertEqual(self.timers.timers, [])

    def test_started_quiz_creates_session_and_timer(self):
        view = self.start_and_join()

        self.assertIs(view.status, SessionStatus.IN_PROGRESS)
        self.assertEqual(view.question.id, 1)
        self.assertEqual(view.question_count, 3)
        self.assertEqual(view.remaining_seconds, 10)
        self.assertTrue(self.timers.latest("student1").started)

    def test_join_is_idempotent(self):
        self.start_and_join()
        self.manager.join_session("student1")

        self.assertEqual(len(self.timers.timers), 1)
        self.assertEqual(self.manager.active_session_count(), 1)

    def test_empty_bank_stays_idle(self):
        manager = QuizManager(_EmptyBank(), timer_factory=self.timers)
        manager.start_quiz()

        view = manager.join_session("student1")

        self.assertIs(view.status, SessionStatus.IDLE)

    def test_resumes_from_persisted_answers(self):
        self.manager.start_quiz()
        self.manager.join_session("student1")
        self.manager.advance("student1", 1)
        # Simulate losing the in-memory session but not the store.
        self.manager._sessions.clear()

        view = self.manager.join_session("student1")

        self.assertEqual(view.question.id, 2)


class TestAnswersAndResults(ManagerTestCase):

    def test_full_run_persists_answers_and_ranked_result(self):
        self.start_and_join()

        view = self.finish_with("student1", ["A", None, "D"])

        self.assertIs(view.status, SessionStatus.FINISHED)
        self.assertEqual(view.result.score, 1)
        self.assertEqual(view.result.rank, 1)
        self.assertFalse(view.result_pending)
        answers = {a.question_id: a.selected_option for a in self.manager.list_answers("student1")}
        self.assertEqual(answers, {1: "A", 2: None, 3: "D"})
        self.assertTrue(self.timers.latest("student1").stopped)

    def test_equal_scores_ranked_by_finish_order(self):
        self.manager.start_quiz()
        self.manager.join_session("student1")
        self.manager.join_session("student2")

        self.finish_with("student1", ["A", "B", "C"])
        self.finish_with("student2", ["A", "B", "C"])

        ranks = [(r.user_id, r.rank) for r in self.manager.list_results()]
        self.assertEqual(ranks, [("student1", 1), ("student2", 2)])

    def test_stale_answer_is_rejected_without_affecting_session(self):
        self.start_and_join()
        self.manager.advance("student1", 1)

        with self.assertRaises(StaleSubmissionError):
            self.manager.record_answer("student1", 1, "A")

        self.assertEqual(self.manager.get_session_view("student1").question.id, 2)

    def test_answer_without_session_is_stale(self):
        with self.assertRaises(StaleSubmissionError):
            self.manager.record_answer("ghost", 1, "A")

    def test_duplicate_finish_does_not_duplicate_result(self):
        self.start_and_join()
        self.finish_with("student1", ["A", "B", "C"])

        self.manager.advance("student1")
        self.manager.advance("student1", 3)

        self.assertEqual(len(self.manager.list_results()), 1)

    def test_finished_student_does_not_get_new_session(self):
        self.start_and_join()
        self.finish_with("student1", ["A", "B", "C"])
        self.manager._sessions.clear()

        view = self.manager.join_session("student1")

        self.assertIs(view.status, SessionStatus.FINISHED)
        self.assertEqual(view.result.score, 6)


class TestCountdownCommits(ManagerTestCase):

    def test_timeout_without_answer_commits_skip_and_advances_once(self):
        self.start_and_join()
        timer = self.timers.latest("student1")

        timer.fire(10)

        view = self.manager.get_session_view("student1")
        self.assertEqual(view.question.id, 2)
        answers = self.manager.list_answers("student1")
        self.assertEqual(len(answers), 1)
        self.assertTrue(answers[0].is_skipped)

    def test_timeout_and_explicit_advance_collapse_into_one_commit(self):
        self.start_and_join()
        self.manager.record_answer("student1", 1, "A")
        timer = self.timers.latest("student1")

        timer.fire(10)
        view = self.manager.advance("student1", 1)

        self.assertEqual(view.question.id, 2)
        self.assertEqual(len(self.manager.list_answers("student1")), 1)

    def test_concurrent_timeout_and_advance(self):
        self.start_and_join()
        timer = self.timers.latest("student1")
        timer.fire(9)
        barrier = Barrier(2)

        def expire():
            barrier.wait()
            timer.fire()

        def click_next():
            barrier.wait()
            self.manager.advance("student1", 1)

        threads = [Thread(target=expire), Thread(target=click_next)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        self.assertEqual(self.manager.get_session_view("student1").question_index, 1)
        self.assertEqual(len(self.manager.list_answers("student1")), 1)

    def test_timer_stops_when_session_finishes(self):
        self.start_and_join()
        timer = self.timers.latest("student1")

        keep_running = timer.fire(30)

        self.assertFalse(keep_running)
        self.assertTrue(timer.stopped)
        self.assertEqual(self.manager.list_results()[0].skipped_count, 3)


class TestResetAndComplete(ManagerTestCase):

    def test_reset_clears_results_answers_and_sessions(self):
        self.start_and_join()
        self.finish_with("student1", ["A", "B", "C"])
        self.manager.join_session("student2")
        self.manager.advance("student2", 1)

        snapshot = self.manager.reset_quiz()

        self.assertIs(snapshot.state, LifecycleState.WAITING)
        self.assertEqual(self.manager.list_results(), [])
        self.assertEqual(self.manager.list_answers("student1"), [])
        self.assertEqual(self.manager.list_answers("student2"), [])
        self.assertEqual(self.manager.active_session_count(), 0)
        self.assertTrue(self.timers.latest("student2").stopped)

    def test_dangling_timer_after_reset_never_commits(self):
        self.start_and_join()
        old_timer = self.timers.latest("student1")
        self.manager.reset_quiz()
        self.manager.start_quiz()
        self.manager.join_session("student1")

        keep_running = old_timer.fire(10)

        self.assertFalse(keep_running)
        self.assertEqual(self.manager.list_answers("student1"), [])
        self.assertEqual(self.manager.get_session_view("student1").remaining_seconds, 10)

    def test_submission_from_previous_run_is_rejected(self):
        self.start_and_join()
        session = self.manager._sessions["student1"]
        self.manager.reset_quiz()

        with self.manager._lock, self.assertRaises(StaleSubmissionError):
            self.manager._submit_result(session)

    def test_reset_moves_to_new_run_when_store_clear_fails(self):
        self.start_and_join()
        self.manager.advance("student1", 1)
        old_run = self.manager.get_lifecycle().run_id

        with patch.object(self.store, "clear", side_effect=PersistenceFailure("down")):
            with self.assertRaises(PersistenceFailure):
                self.manager.reset_quiz()

        snapshot = self.manager.get_lifecycle()
        self.assertIs(snapshot.state, LifecycleState.WAITING)
        self.assertEqual(snapshot.run_id, old_run + 1)
        self.assertEqual(self.manager.active_session_count(), 0)
        self.assertTrue(self.timers.latest("student1").stopped)

    def test_complete_finishes_running_sessions(self):
        self.start_and_join()
        self.manager.record_answer("student1", 1, "A")

        snapshot = self.manager.complete_quiz()

        self.assertIs(snapshot.state, LifecycleState.COMPLETED)
        result = self.manager.get_result("student1")
        self.assertEqual(result.correct_count, 1)
        self.assertEqual(result.skipped_count, 2)
        self.assertTrue(self.timers.latest("student1").stopped)

    def test_no_new_sessions_after_complete(self):
        self.manager.start_quiz()
        self.manager.complete_quiz()

        view = self.manager.join_session("late")

        self.assertIs(view.status, SessionStatus.IDLE)
        self.assertIs(view.lifecycle_state, LifecycleState.COMPLETED)


class TestPersistenceFailures(ManagerTestCase):

    def test_failed_answer_save_keeps_progress_and_countdown(self):
        self.start_and_join()
        with patch.object(self.store, "save_answer", side_effect=PersistenceFailure("down")):
            with self.assertRaises(PersistenceFailure):
                self.manager.advance("student1", 1)

        view = self.manager.get_session_view("student1")
        self.assertEqual(view.question.id, 2)
        self.assertEqual(view.advisory, ANSWER_SAVE_ADVISORY)
        self.assertFalse(self.timers.latest("student1").stopped)

    def test_answer_advisory_cleared_after_next_successful_save(self):
        self.start_and_join()
        with patch.object(self.store, "save_answer", side_effect=PersistenceFailure("down")):
            with self.assertRaises(PersistenceFailure):
                self.manager.advance("student1", 1)

        view = self.manager.advance("student1", 2)

        self.assertIsNone(view.advisory)
        self.assertEqual(view.question.id, 3)

    def test_failed_save_during_timeout_keeps_timer_running(self):
        self.start_and_join()
        timer = self.timers.latest("student1")
        with patch.object(self.store, "save_answer", side_effect=PersistenceFailure("down")):
            keep_running = timer.fire(10)

        self.assertTrue(keep_running)
        self.assertEqual(self.manager.get_session_view("student1").question.id, 2)

    def test_failed_result_save_can_be_retried(self):
        self.start_and_join()
        with patch.object(self.store, "save_result", side_effect=PersistenceFailure("down")):
            with self.assertRaises(PersistenceFailure):
                self.finish_with("student1", ["A", "B", "C"])

        view = self.manager.get_session_view("student1")
        self.assertTrue(view.result_pending)
        self.assertEqual(view.advisory, RESULT_SAVE_ADVISORY)
        self.assertEqual(self.manager.list_results(), [])

        result = self.manager.retry_result("student1")

        self.assertEqual(result.score, 6)
        self.assertEqual(result.rank, 1)
        self.assertFalse(self.manager.get_session_view("student1").result_pending)
        self.assertEqual(len(self.manager.list_results()), 1)

    def test_retry_without_finished_session(self):
        self.start_and_join()
        with self.assertRaises(StaleSubmissionError):
            self.manager.retry_result("student1")


class _EmptyBank:
    def list(self):
        return []


if __name__ == "__main__":
    unittest.main()
