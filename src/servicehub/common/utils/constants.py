from datetime import timedelta

BOOKING_EXPIRY = timedelta(hours=24)
CONFLICT_BUFFER = timedelta(hours=2)
MIN_RESCHEDULE_NOTICE = timedelta(hours=2)
SLOT_STEP = timedelta(hours=1)
DEFAULT_SLOT_DURATION_HOURS = 2

SERVICE_RADIUS_METERS = 10_000

OTP_LENGTH = 6
OTP_TTL = timedelta(minutes=10)
OTP_RESEND_INTERVAL = timedelta(minutes=2)
OTP_MAX_ATTEMPTS = 3

FULL_REFUND_NOTICE = timedelta(hours=24)
PARTIAL_REFUND_NOTICE = timedelta(hours=2)
PARTIAL_REFUND_RATE = 0.5

COMMISSION_RATE = 0.10

DEFAULT_COUNTRY_CODE = "+91"
DEFAULT_LOCAL_TIMEZONE = "Asia/Kolkata"

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

SERVICE_SUBCATEGORIES = {
    "Home Repair & Maintenance": (
        "Plumbing",
        "Electrical",
        "Carpentry",
        "Painting",
        "Appliance Repair",
        "HVAC Repair",
        "Handyman Services",
        "Roofing",
        "Masonry",
        "Pest Control",
        "Gardening & Landscaping",
        "Waterproofing",
        "Home Security Systems",
        "Intercom & Doorbell Repair",
        "Furniture Assembly",
        "Smart Home Device Setup",
    ),
    "Cleaning & Housekeeping": (
        "Home Cleaning (Deep)",
        "Home Cleaning (Standard)",
        "Commercial Cleaning",
        "Sofa & Carpet Cleaning",
        "Bathroom Cleaning",
        "Kitchen Cleaning",
        "Window Cleaning",
        "Pressure Washing",
        "Move-in/Move-out Cleaning",
        "Laundry & Ironing",
        "Maid Service",
    ),
    "Beauty & Wellness": (
        "Haircut & Styling (Men)",
        "Haircut & Styling (Women)",
        "Manicure & Pedicure",
        "Facial",
        "Massage Therapy",
        "Makeup Artist",
        "Waxing",
        "Bridal Services",
        "Yoga & Fitness Trainer",
        "Dietitian & Nutritionist",
    ),
    "Automotive Services": (
        "Car Repair & Maintenance",
        "Bike Repair & Maintenance",
        "Car Washing & Detailing",
        "Tyre Repair & Replacement",
        "Battery Replacement",
        "Roadside Assistance",
        "Vehicle Inspection",
    ),
    "Personal & Errands": (
        "Grocery Delivery",
        "Document Delivery",
        "Personal Shopping",
        "Elderly Care",
        "Child Care / Babysitting",
        "Courier Services",
        "Queueing Services",
    ),
    "Tutoring & Education": (
        "Academic Tutoring",
        "Music Lessons",
        "Language Lessons",
        "Exam Preparation",
        "Computer & IT Skills",
        "Art & Craft Classes",
    ),
    "Event Services": (
        "Event Planning",
        "Photography",
        "Videography",
        "Catering",
        "Decorations",
        "DJ Services",
        "Live Music",
        "Waitstaff",
    ),
    "Pet Care": (
        "Pet Grooming",
        "Pet Sitting",
        "Dog Walking",
        "Pet Training",
        "Veterinary Assistance (non-medical)",
    ),
    "Professional Services": (
        "IT Support",
        "Graphic Design",
        "Web Development",
        "Content Writing",
        "Legal Consultation (basic)",
        "Accounting & Bookkeeping",
        "Tax Preparation",
        "Marketing & SEO",
        "Photography (Professional)",
        "Consulting",
    ),
    "Daily Wage Labor": (
        "General Labor",
        "Construction Helper",
        "Farm Labor",
        "Household Helper",
        "Gardening Assistant",
        "Loading/Unloading",
        "Event Setup/Takedown",
        "Cleaning Assistant",
        "Delivery Helper",
        "Coolie/Porter",
    ),
    "Other": (
        "Custom Request",
        "Miscellaneous",
    ),
}

SERVICE_CATEGORIES = tuple(SERVICE_SUBCATEGORIES)

# Hours a job blocks the provider's calendar when it is moved. Subcategories
# without an entry fall back to the creation buffer.
SERVICE_DURATION_HOURS: dict[str, int] = {}


def is_valid_service(category: str, subcategory: str) -> bool:
    return subcategory in SERVICE_SUBCATEGORIES.get(category, ())


def service_duration(subcategory: str) -> timedelta:
    hours = SERVICE_DURATION_HOURS.get(subcategory)
    if hours is None:
        return CONFLICT_BUFFER
    return timedelta(hours=hours)
