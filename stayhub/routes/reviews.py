from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError
from datetime import date
from stayhub import db
from stayhub.models.booking import Booking
from stayhub.models.property import Property
from stayhub.models.review import Review
from stayhub.services import cache_service
from stayhub.services.notification_service import notification_service
from stayhub.utils.decorators import json_required, validate_json_fields, get_current_user
from stayhub.utils.validators import validate_rating
from stayhub.utils.helpers import (
    create_response, create_error_response, paginate_query, pagination_meta, sanitize_input
)

reviews_bp = Blueprint('reviews', __name__)


def has_completed_stay(user_id, property_id, today=None):
    """Whether the user checked out of a confirmed stay at the property"""
    today = today or date.today()
    return Booking.query.filter(
        Booking.user_id == user_id,
        Booking.property_id == property_id,
        Booking.status == 'confirmed',
        Booking.end_date <= today
    ).first() is not None


def _refresh_rating(property):
    db.session.flush()
    property.update_rating()
    db.session.commit()
    cache_service.invalidate_property(property.id)


@reviews_bp.route('/property/<int:property_id>', methods=['GET'])
def get_property_reviews(property_id):
    """Get property reviews"""
    property = db.session.get(Property, property_id)

    if not property or not property.is_active:
        return create_error_response('Property not found', 404)

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 10, type=int)

    query = Review.query.filter_by(property_id=property_id).order_by(Review.created_at.desc())
    pagination = paginate_query(query, page, per_page)

    return create_response({
        'reviews': [review.to_dict(include_user=True) for review in pagination['items']],
        'rating_avg': property.rating_avg,
        'rating_count': property.rating_count,
        'pagination': pagination_meta(pagination)
    })


@reviews_bp.route('/property/<int:property_id>', methods=['POST'])
@jwt_required()
@json_required
@validate_json_fields(['rating'])
def add_property_review(property_id):
    """Add a review for a property after a completed stay"""
    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    data = request.get_json()

    property = db.session.get(Property, property_id)
    if not property or not property.is_active:
        return create_error_response('Property not found', 404)

    rating = data['rating']
    if not validate_rating(rating):
        return create_error_response('Rating must be an integer between 1 and 5', 400)

    if property.host_id == user.id:
        return create_error_response('Hosts cannot review their own property', 403)

    if not has_completed_stay(user.id, property.id):
        return create_error_response('Only guests who completed a stay can review this property', 403)

    if Review.query.filter_by(property_id=property.id, user_id=user.id).first():
        return create_error_response('You have already reviewed this property', 409)

    review = Review(
        property_id=property.id,
        user_id=user.id,
        rating=rating,
        comment=sanitize_input(data.get('comment', ''), 2000) or None
    )
    db.session.add(review)

    try:
        _refresh_rating(property)
    except IntegrityError:
        db.session.rollback()
        return create_error_response('You have already reviewed this property', 409)

    current_app.logger.info(f"Review {review.id} ({rating}/5) added to property {property.id}")
    notification_service.notify_new_review(review)

    return create_response({
        'review': review.to_dict(include_user=True)
    }, 'Review added successfully', 201)


@reviews_bp.route('/<int:review_id>', methods=['GET'])
def get_review(review_id):
    review = db.session.get(Review, review_id)
    if not review:
        return create_error_response('Review not found', 404)

    return create_response({'review': review.to_dict(include_user=True)})


@reviews_bp.route('/<int:review_id>', methods=['PUT'])
@jwt_required()
@json_required
def update_review(review_id):
    """Edit own review"""
    user = get_current_user()
    review = db.session.get(Review, review_id)

    if not review:
        return create_error_response('Review not found', 404)

    if not user or review.user_id != user.id:
        return create_error_response('Permission denied', 403)

    data = request.get_json()

    if 'rating' in data:
        if not validate_rating(data['rating']):
            return create_error_response('Rating must be an integer between 1 and 5', 400)
        review.rating = data['rating']

    if 'comment' in data:
        review.comment = sanitize_input(data['comment'], 2000) or None

    _refresh_rating(review.property)

    return create_response({
        'review': review.to_dict(include_user=True)
    }, 'Review updated successfully')
