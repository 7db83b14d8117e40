"""
CRUD Operations Module
Content Persistence Gateway over Firestore
"""
from chefai.db.crud.menus import MenuCRUD
from chefai.db.crud.posts import PostCRUD
from chefai.db.crud.recipes import RecipeCRUD
from chefai.db.crud.users import UserCRUD

__all__ = [
    "MenuCRUD",
    "PostCRUD",
    "RecipeCRUD",
    "UserCRUD",
]
