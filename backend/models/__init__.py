from models.base import Base
from models.classroom import Classroom
from models.course import Course
from models.course_prerequisite import CoursePrerequisite
from models.course_section import CourseSection
from models.department import Department
from models.enrollment import Enrollment
from models.instructor import Instructor
from models.schedule import Schedule
from models.schedule_run import ScheduleRun

__all__ = [
	"Base",
	"Classroom",
	"Course",
	"CoursePrerequisite",
	"CourseSection",
	"Department",
	"Enrollment",
	"Instructor",
	"Schedule",
	"ScheduleRun",
]
