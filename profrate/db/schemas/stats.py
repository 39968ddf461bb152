from pydantic import BaseModel


class Stats(BaseModel):
    total_users: int
    total_doctors: int
    total_reviews: int
    active_users: int
    users_growth: float
    doctors_growth: float
    reviews_growth: float
