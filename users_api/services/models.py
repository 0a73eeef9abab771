"""Database models for user accounts."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from flask_sqlalchemy import SQLAlchemy

db: SQLAlchemy = SQLAlchemy()


class DBUser(db.Model):  # type: ignore
    """
    User account table.

    +---------------------+--------------+------+-----+---------+----------------+
    | Field               | Type         | Null | Key | Default | Extra          |
    +---------------------+--------------+------+-----+---------+----------------+
    | user_id             | int          | NO   | PRI | NULL    | auto_increment |
    | username            | varchar(256) | NO   |     | NULL    |                |
    | normalized_username | varchar(256) | NO   | UNI | NULL    |                |
    | email               | varchar(256) | NO   |     | NULL    |                |
    | normalized_email    | varchar(256) | NO   | UNI | NULL    |                |
    | name                | varchar(50)  | NO   |     |         |                |
    | surname             | varchar(50)  | NO   |     |         |                |
    | password_hash       | varchar(255) | NO   |     | NULL    |                |
    | email_confirmed     | tinyint(1)   | NO   |     | 0       |                |
    | security_stamp      | varchar(64)  | NO   |     | NULL    |                |
    | created             | datetime     | NO   |     | NULL    |                |
    +---------------------+--------------+------+-----+---------+----------------+
    """

    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(256), nullable=False)
    normalized_username = Column(String(256), nullable=False, unique=True,
                                 index=True)
    email = Column(String(256), nullable=False)
    normalized_email = Column(String(256), nullable=False, unique=True,
                              index=True)
    name = Column(String(50), nullable=False, default='')
    surname = Column(String(50), nullable=False, default='')
    password_hash = Column(String(255), nullable=False)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    security_stamp = Column(String(64), nullable=False)
    created = Column(DateTime(timezone=True), nullable=False)
