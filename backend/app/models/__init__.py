# Import all catalog models here
from app.models.food_item import FoodEntry, FOOD_DATABASE
