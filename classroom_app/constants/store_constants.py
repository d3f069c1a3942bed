"""Document-store collection names."""

QUIZZES: str = "quizzes"
QUIZ_RESULTS: str = "quiz_results"
ASSIGNMENTS: str = "assignments"
SUBMISSIONS: str = "submissions"
ATTENDANCES: str = "attendances"
CLASSROOMS: str = "classrooms"
CLASS_ENROLLMENTS: str = "class_enrollments"
STUDENTS: str = "students"
