from groupeval import db
from datetime import datetime, timezone
import hashlib
import string
import random

SESSION_ACTIVE = 'ACTIVE'
SESSION_COMPLETED = 'COMPLETED'

CODE_ALPHABET = string.ascii_uppercase + string.digits


def utcnow():
    return datetime.now(timezone.utc)


def _isoformat(value):
    return value.isoformat() if value else None


def digest_admin_secret(secret: str) -> str:
    """Stable lookup key for an admin secret; the secret itself is never stored."""
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


def generate_join_code(length=6):
    """Generate a join code not held by any active session."""
    while True:
        code = ''.join(random.choices(CODE_ALPHABET, k=length))
        if not Session.query.filter_by(join_code=code, status=SESSION_ACTIVE).first():
            return code


def generate_hash_code(length=8):
    return ''.join(random.choices(CODE_ALPHABET, k=length))


class Session(db.Model):
    __tablename__ = 'session'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    join_code = db.Column(db.String(16), nullable=False, index=True)
    admin_secret_digest = db.Column(db.String(64), unique=True, nullable=False, index=True)
    participant_count = db.Column(db.Integer, nullable=False)
    threshold = db.Column(db.Integer, nullable=False, default=50)
    penalty_recent = db.Column(db.Boolean, nullable=False, default=False)
    penalty_sick = db.Column(db.Boolean, nullable=False, default=False)
    penalty_important = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default=SESSION_ACTIVE, index=True)  # ACTIVE, COMPLETED
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    participants = db.relationship(
        'Participant',
        back_populates='session',
        order_by='Participant.id',
        cascade='all, delete-orphan',
    )
    group_result = db.relationship(
        'GroupResult',
        back_populates='session',
        uselist=False,
        cascade='all, delete-orphan',
    )

    @property
    def joined_count(self):
        return sum(1 for p in self.participants if p.joined)

    @property
    def submitted_count(self):
        return sum(1 for p in self.participants if p.submitted)

    @property
    def penalties(self):
        return {
            'recent': bool(self.penalty_recent),
            'sick': bool(self.penalty_sick),
            'important': bool(self.penalty_important),
        }

    def apply_penalties(self, flags):
        self.penalty_recent = bool(flags.get('recent', False))
        self.penalty_sick = bool(flags.get('sick', False))
        self.penalty_important = bool(flags.get('important', False))

    def submitted_scores(self):
        return [p.score for p in self.participants if p.submitted]

    def to_dict(self, include_participants=True):
        data = {
            'id': self.id,
            'name': self.name,
            'join_code': self.join_code,
            'status': self.status,
            'participant_count': self.participant_count,
            'threshold': self.threshold,
            'penalties': self.penalties,
            'joined_count': self.joined_count,
            'submitted_count': self.submitted_count,
            'created_at': _isoformat(self.created_at),
            'completed_at': _isoformat(self.completed_at),
            'group_result': self.group_result.to_dict() if self.group_result else None,
        }
        if include_participants:
            data['participants'] = [p.to_dict() for p in self.participants]
        return data


class Participant(db.Model):
    __tablename__ = 'participant'
    __table_args__ = (
        db.CheckConstraint('NOT submitted OR joined', name='ck_participant_submitted_requires_joined'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('session.id', ondelete='CASCADE'), nullable=False, index=True)
    hash_code = db.Column(db.String(16), nullable=False)
    joined = db.Column(db.Boolean, nullable=False, default=False)
    submitted = db.Column(db.Boolean, nullable=False, default=False)
    rating_rarity = db.Column(db.Integer, nullable=True)
    rating_social = db.Column(db.Integer, nullable=True)
    rating_distance = db.Column(db.Integer, nullable=True)
    rating_context = db.Column(db.Integer, nullable=True)
    score = db.Column(db.Integer, nullable=True)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    session = db.relationship('Session', back_populates='participants')

    def __init__(self, **kwargs):
        super(Participant, self).__init__(**kwargs)
        if not self.hash_code:
            self.hash_code = generate_hash_code()

    @property
    def ratings(self):
        if not self.submitted:
            return None
        return {
            'rarity': self.rating_rarity,
            'social': self.rating_social,
            'distance': self.rating_distance,
            'context': self.rating_context,
        }

    def record_ratings(self, ratings, score):
        self.rating_rarity = ratings['rarity']
        self.rating_social = ratings['social']
        self.rating_distance = ratings['distance']
        self.rating_context = ratings['context']
        self.score = score

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'hash_code': self.hash_code,
            'joined': self.joined,
            'submitted': self.submitted,
            'score': self.score,
            'ratings': self.ratings,
        }


class GroupResult(db.Model):
    __tablename__ = 'group_result'
    id = db.Column(db.Integer, primary_key=True)
    # One result per session; recomputed in place, never recreated
    session_id = db.Column(db.Integer, db.ForeignKey('session.id', ondelete='CASCADE'), unique=True, nullable=False)
    average_score = db.Column(db.Integer, nullable=False)
    passes = db.Column(db.Boolean, nullable=False)
    penalty_points = db.Column(db.Integer, nullable=False, default=0)
    submission_count = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    session = db.relationship('Session', back_populates='group_result')

    def to_dict(self):
        return {
            'average_score': self.average_score,
            'passes': self.passes,
            'penalty_points': self.penalty_points,
            'submission_count': self.submission_count,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }
