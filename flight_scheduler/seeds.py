"""Default lookup rows inserted into an empty database."""

from flight_scheduler.models.lookup import LessonCategory

DEFAULT_AIRPORTS = [
    ("KVNY", "Van Nuys Airport", "Los Angeles", "California"),
    ("KSMO", "Santa Monica Airport", "Santa Monica", "California"),
    ("KWHP", "Whiteman Airport", "Los Angeles", "California"),
    ("KBUR", "Bob Hope Airport", "Burbank", "California"),
    ("KLGB", "Long Beach Airport", "Long Beach", "California"),
    ("KLAX", "Los Angeles International Airport", "Los Angeles", "California"),
    ("KSFO", "San Francisco International Airport", "San Francisco", "California"),
    ("KSNA", "John Wayne Airport", "Santa Ana", "California"),
    ("KSAN", "San Diego International Airport", "San Diego", "California"),
    ("KLAS", "Harry Reid International Airport", "Las Vegas", "Nevada"),
    ("KPHX", "Phoenix Sky Harbor International Airport", "Phoenix", "Arizona"),
    ("KDEN", "Denver International Airport", "Denver", "Colorado"),
    ("KDFW", "Dallas/Fort Worth International Airport", "Dallas", "Texas"),
    ("KIAH", "George Bush Intercontinental Airport", "Houston", "Texas"),
    ("KORD", "O'Hare International Airport", "Chicago", "Illinois"),
    ("KATL", "Hartsfield-Jackson Atlanta International Airport", "Atlanta", "Georgia"),
    ("KJFK", "John F. Kennedy International Airport", "New York", "New York"),
    ("KEWR", "Newark Liberty International Airport", "Newark", "New Jersey"),
    ("KBOS", "Logan International Airport", "Boston", "Massachusetts"),
    ("KMIA", "Miami International Airport", "Miami", "Florida"),
]

DEFAULT_LESSON_TYPES = [
    ("Private Pilot Training", "Initial flight training for Private Pilot Certificate", LessonCategory.PRIMARY),
    ("Discovery Flight", "Introductory flight lesson for prospective students", LessonCategory.PRIMARY),
    ("Ground School", "Classroom instruction for aviation knowledge", LessonCategory.PRIMARY),
    ("Instrument Rating", "Training for Instrument Rating certification", LessonCategory.ADVANCED),
    ("Commercial Pilot Training", "Training for Commercial Pilot Certificate", LessonCategory.ADVANCED),
    ("Multi-Engine Rating", "Training for Multi-Engine aircraft rating", LessonCategory.ADVANCED),
    ("Flight Review (BFR)", "Biennial Flight Review for currency", LessonCategory.SPECIALIZED),
    ("Instrument Proficiency Check (IPC)", "Instrument rating proficiency check", LessonCategory.SPECIALIZED),
    ("Checkout Flight", "Aircraft-specific checkout for new pilots", LessonCategory.SPECIALIZED),
    ("Stage Check", "Progress evaluation during training", LessonCategory.SPECIALIZED),
    ("Certified Flight Instructor (CFI)", "Training to become a flight instructor", LessonCategory.ADVANCED),
    ("Certified Flight Instructor - Instrument (CFII)", "Training to become an instrument instructor", LessonCategory.ADVANCED),
    ("Multi-Engine Instructor (MEI)", "Training to instruct in multi-engine aircraft", LessonCategory.ADVANCED),
    ("Tailwheel Endorsement", "Training for tailwheel aircraft endorsement", LessonCategory.SPECIALIZED),
    ("High Performance Endorsement", "Training for high-performance aircraft", LessonCategory.SPECIALIZED),
    ("Complex Aircraft Endorsement", "Training for complex aircraft", LessonCategory.SPECIALIZED),
]

__all__ = ["DEFAULT_AIRPORTS", "DEFAULT_LESSON_TYPES"]
