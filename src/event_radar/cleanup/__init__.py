from .service import CleanupPlan, CleanupService, completeness_score
