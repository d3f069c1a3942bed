"""User-facing messages returned by the API."""

QUIZ_NOT_FOUND_MESSAGE: str = "Quiz not found."
QUIZ_LOAD_FAILED_MESSAGE: str = "Unable to load the quiz. Please try again."
QUIZ_SUBMIT_FAILED_MESSAGE: str = "Unable to submit your answers. Please try again."
CONFIRM_SUBMIT_MESSAGE: str = (
    "Are you sure you want to submit? You cannot change your answers afterwards."
)
BACK_TO_CLASSROOM_LABEL: str = "Back to classroom"
GRADE_REPORT_FAILED_MESSAGE: str = "Failed to load grade report. Please try again."
CONFIRM_DELETE_RESULT_TEMPLATE: str = (
    "Deleting the result of quiz '{quiz_title}' for {student_name} cannot be undone. "
    "The student will be able to retake the quiz."
)
RESULT_DELETED_MESSAGE: str = "Quiz result deleted. The student can retake the quiz."
NOT_GRADED_PLACEHOLDER: str = "-"
NOT_AVAILABLE_PLACEHOLDER: str = "N/A"
UNKNOWN_STUDENT_NAME: str = "Unknown"
RETURNED_FOR_REVISION_MESSAGE: str = "Returned for revision."
SUBMISSION_LOCKED_MESSAGE: str = (
    "This submission has already been graded and can no longer be changed."
)
ALREADY_ENROLLED_MESSAGE: str = "You are already enrolled in this class."
