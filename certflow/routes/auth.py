from flask import Blueprint, request, jsonify
from certflow.extensions import db
from certflow.models import User
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity

bp = Blueprint('auth', __name__)


def _token_response(user, status=200):
    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role}
    )
    return jsonify({
        "access_token": access_token,
        "user": user.to_dict()
    }), status


@bp.route('/register', methods=['POST'])
def register():
    data = request.get_json() or {}
    full_name = (data.get('full_name') or '').strip().title()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    # Validate input
    if not all([full_name, email, password]):
        return jsonify({"error": "Missing required fields"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "Email already exists."}), 409

    # Admins are created out of band; registration is students only
    user = User(full_name=full_name, email=email, role='student')
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    return _token_response(user, 201)


@bp.route('/login', methods=['POST'])
def login():
    data = request.get_json()
    if not data:
        return jsonify({"error": "Missing JSON data"}), 400

    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "Account suspended"}), 403

    return _token_response(user)


@bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict()), 200
