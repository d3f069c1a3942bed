"""Static metadata describing the classroom service."""

APP_NAME = "Classroom"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Classroom is a small learning-management backend. Teachers publish quizzes and "
    "assignments, students take quizzes and submit work, and grades are aggregated per class."
)
