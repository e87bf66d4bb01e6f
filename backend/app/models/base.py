"""
ORM 基类
---------------------------------
所有数据模型继承自 Base，init_db.py 通过 Base.metadata 建表。
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
