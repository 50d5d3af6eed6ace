"""Error Hierarchy — status codes, categories and the REST envelope."""

from helpqueue.core.errors import (
    BusinessRuleError, ConsistencyFault, DatabaseError, DoubleAddError,
    DoubleAnswerError, ErrorCategory, ErrorSeverity, HelpQueueError,
    QueueClosedError, QuestionValidationError, ResourceNotFoundError,
)


def test_business_rule_errors_are_409_warnings():
    for exc in (QueueClosedError(1), DoubleAddError(2, 1), DoubleAnswerError(10, 1)):
        assert isinstance(exc, BusinessRuleError)
        assert exc.http_status == 409
        assert exc.severity == ErrorSeverity.WARNING
        assert exc.category == ErrorCategory.BUSINESS_RULE


def test_business_rule_codes():
    assert QueueClosedError(1).code == "QUEUE_CLOSED"
    assert DoubleAddError(2, 1).code == "DOUBLE_ADD"
    assert DoubleAnswerError(10, 1).code == "DOUBLE_ANSWER"


def test_double_add_context_names_student_and_course():
    exc = DoubleAddError(2, 1)
    assert exc.context.user_id == 2
    assert exc.context.course_id == 1


def test_consistency_fault_is_critical_500():
    exc = ConsistencyFault("row is nested")
    assert exc.http_status == 500
    assert exc.severity == ErrorSeverity.CRITICAL
    assert exc.message == "Consistency error - row is nested"


def test_validation_error_response_includes_details():
    exc = QuestionValidationError("Invalid input", details=[{"field": "help_text"}])
    body = exc.to_response()
    assert exc.http_status == 400
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"] == [{"field": "help_text"}]


def test_not_found_and_database_status_codes():
    assert ResourceNotFoundError("Question", "7").http_status == 404
    assert DatabaseError("boom", "commit").http_status == 503


def test_envelope_shape():
    body = QueueClosedError(3).to_response()
    error = body["error"]
    assert set(error) == {
        "code", "message", "category", "severity", "timestamp", "context",
    }
    assert error["context"]["course_id"] == 3
    assert error["category"] == "business_rule"


def test_all_errors_share_the_base_class():
    assert issubclass(ConsistencyFault, HelpQueueError)
    assert issubclass(DatabaseError, HelpQueueError)
