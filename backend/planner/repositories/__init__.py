from .study_plans import StudyPlanRepository, study_plans

__all__ = ["StudyPlanRepository", "study_plans"]
