"""
Authentication Routes
Signup, login and logout with lockout and rate limiting
"""
from flask import current_app, jsonify
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError
from . import auth_bp
from .forms import LoginForm, SignupForm, validate_password_strength, form_errors
from models.users import User
from extensions import db, limiter
from services.profile_service import ProfileService
from services.seed_service import SeedService
from utils import civil_time
from utils.results import failure, to_response, VALIDATION_ERROR, UNAUTHENTICATED, CONFLICT


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token for API clients that post with CSRF protection enabled"""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/signup', methods=['POST'])
@limiter.limit("5 per minute")
def signup():
    """Create an account, seed its defaults and log it in"""
    form = SignupForm()
    if not form.validate_on_submit():
        return to_response(failure(VALIDATION_ERROR, 'Invalid signup details', details=form_errors(form)))

    ok, message = validate_password_strength(form.password.data)
    if not ok:
        return to_response(failure(VALIDATION_ERROR, message))

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        return to_response(failure(CONFLICT, 'An account with this email already exists'))

    user = User(
        email=email,
        name=form.name.data.strip(),
        currency_code=current_app.config.get('DEFAULT_CURRENCY', 'AED'),
    )
    user.set_password(form.password.data)
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Signup failed')
        return to_response(failure(CONFLICT, 'An account with this email already exists'))

    seeded = SeedService.ensure_user_seed_data(user.id)
    if not seeded['ok']:
        current_app.logger.warning(f'user {user.id}: seed failed: {seeded["error"]["message"]}')

    # Falls back to the account name when no display name was given
    ProfileService.ensure_display_name(user.id, (form.display_name.data or '').strip() or user.name)

    login_user(user)
    current_app.logger.info(f'New account {user.id} created')
    return jsonify({'ok': True, 'data': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")  # Rate limit login attempts
def login():
    """Log in with email and password"""
    if current_user.is_authenticated:
        return jsonify({'ok': True, 'data': current_user.to_dict()})

    form = LoginForm()
    if not form.validate_on_submit():
        return to_response(failure(VALIDATION_ERROR, 'Invalid login details', details=form_errors(form)))

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()

    # Generic error for unknown users to prevent user enumeration
    invalid = failure(UNAUTHENTICATED, 'Invalid email or password.')
    if not user:
        return to_response(invalid)

    if user.is_locked():
        minutes_left = int((user.locked_until - civil_time.utcnow_naive()).total_seconds() / 60) + 1
        return to_response(failure(
            UNAUTHENTICATED,
            f'Account temporarily locked due to multiple failed login attempts. Try again in {minutes_left} minutes.'
        ))

    if not user.is_active:
        return to_response(failure(UNAUTHENTICATED, 'This account has been deactivated.'))

    if not user.check_password(form.password.data):
        user.record_failed_login()
        return to_response(invalid)

    login_user(user, remember=form.remember.data)
    user.update_last_login()
    user.reset_failed_logins()
    return jsonify({'ok': True, 'data': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """User logout"""
    logout_user()
    return jsonify({'ok': True, 'data': {}})
