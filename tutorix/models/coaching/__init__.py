from tutorix.models.coaching.coaching import Coaching
from tutorix.models.coaching.member import CoachingMember, Ward

__all__ = ["Coaching", "CoachingMember", "Ward"]
