"""
Input validation utilities
Server-side validation for identifiers, dates and time slots
"""
import re
from datetime import date, datetime

from campus_connect.utils.errors import InvalidIdError, ValidationError

TIME_PATTERN = re.compile(r'([01][0-9]|2[0-3]):[0-5][0-9]')
ID_PATTERN = re.compile(r'[0-9]+')


class Validator:
    """Input validation utilities"""

    @staticmethod
    def validate_email(email):
        """Validate email format"""
        if not email or len(email) > 254:
            return False
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(pattern, email))

    @staticmethod
    def validate_string(value, min_len=1, max_len=1000, field_name="Field"):
        """Validate string length"""
        if not value or not isinstance(value, str):
            return False, f"{field_name} is required"
        if len(value.strip()) < min_len:
            return False, f"{field_name} must be at least {min_len} characters"
        if len(value) > max_len:
            return False, f"{field_name} must not exceed {max_len} characters"
        return True, "Valid"

    @staticmethod
    def validate_integer(value, min_val=None, max_val=None, field_name="Field"):
        """Validate integer value"""
        try:
            val = int(value)
            if min_val is not None and val < min_val:
                return False, f"{field_name} must be at least {min_val}"
            if max_val is not None and val > max_val:
                return False, f"{field_name} must not exceed {max_val}"
            return True, val
        except (ValueError, TypeError):
            return False, f"{field_name} must be a valid number"

    @staticmethod
    def validate_id(value, entity="Record"):
        """
        Return ``value`` as a positive integer identifier.

        Raises InvalidIdError for anything that is not one (booleans, floats,
        negative numbers, non-digit strings) so lookups never run with a
        malformed id.
        """
        if isinstance(value, bool):
            raise InvalidIdError(entity, value)
        if isinstance(value, int):
            if value > 0:
                return value
            raise InvalidIdError(entity, value)
        if isinstance(value, str) and ID_PATTERN.fullmatch(value.strip()):
            parsed = int(value.strip())
            if parsed > 0:
                return parsed
        raise InvalidIdError(entity, value)

    @staticmethod
    def normalize_date(value, field_name="Date"):
        """
        Normalize a date, datetime or ISO string to 'YYYY-MM-DD'.

        Time of day is discarded so bookings match on the calendar day alone.
        """
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str) and value.strip():
            text = value.strip().replace('Z', '+00:00')
            try:
                return datetime.fromisoformat(text).date().isoformat()
            except ValueError:
                pass
            try:
                return date.fromisoformat(text[:10]).isoformat()
            except ValueError:
                pass
        raise ValidationError(f"{field_name} must be a valid date", details={'field': field_name})

    @staticmethod
    def validate_time(value, field_name="Time"):
        """Validate a zero-padded 24-hour 'HH:MM' string"""
        if not isinstance(value, str) or not TIME_PATTERN.fullmatch(value):
            raise ValidationError(f"{field_name} must be in HH:MM 24-hour format",
                                  details={'field': field_name})
        return value

    @staticmethod
    def validate_time_range(start_time, end_time):
        """Validate a same-day slot where start precedes end"""
        Validator.validate_time(start_time, "Start time")
        Validator.validate_time(end_time, "End time")
        if start_time >= end_time:
            raise ValidationError("End time must be after start time",
                                  details={'start_time': start_time, 'end_time': end_time})
        return start_time, end_time

    @staticmethod
    def validate_role(role):
        """Validate user role"""
        valid_roles = ['student', 'faculty', 'hod', 'librarian', 'admin']
        if role not in valid_roles:
            return False, f"Role must be one of: {', '.join(valid_roles)}"
        return True, "Valid"

    @staticmethod
    def validate_status(status, valid_statuses):
        """Validate status against allowed values"""
        if status not in valid_statuses:
            return False, f"Status must be one of: {', '.join(valid_statuses)}"
        return True, "Valid"

    @staticmethod
    def sanitize_html(text):
        """Basic HTML sanitization"""
        if not text:
            return ""
        # Remove potentially dangerous tags
        dangerous_patterns = [
            r'<script[^>]*>.*?</script>',
            r'<iframe[^>]*>.*?</iframe>',
            r'on\w+="[^"]*"',
            r"on\w+='[^']*'",
            r'javascript\s*:',
            r'vbscript\s*:',
        ]
        for pattern in dangerous_patterns:
            text = re.sub(pattern, '', text, flags=re.IGNORECASE | re.DOTALL)
        return text.strip()
