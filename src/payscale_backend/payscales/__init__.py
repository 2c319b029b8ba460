from .grades import PersonnelGradeSession
from .service import PayScaleSession, default_pay_scales

__all__ = ["PayScaleSession", "PersonnelGradeSession", "default_pay_scales"]
