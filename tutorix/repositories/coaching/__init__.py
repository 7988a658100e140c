from tutorix.repositories.coaching.coaching_repository import CoachingMemberRepository, CoachingRepository

__all__ = ["CoachingRepository", "CoachingMemberRepository"]
