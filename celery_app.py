from celery import Celery
from stayhub import create_app
import os


def make_celery(app):
    celery = Celery(
        app.import_name,
        backend=app.config['CELERY_RESULT_BACKEND'],
        broker=app.config['CELERY_BROKER_URL']
    )
    celery.conf.update(
        task_ignore_result=False,
        timezone='UTC',
    )

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery


# Create Flask app and Celery instance
flask_app = create_app(os.getenv('FLASK_ENV', 'development'))
celery = make_celery(flask_app)


@celery.task
def expire_unpaid_bookings():
    """Cancel pending bookings whose payment never completed"""
    from stayhub.services.booking_service import expire_stale_bookings

    expired = expire_stale_bookings()
    return f"Expired {expired} unpaid bookings"


@celery.task
def retry_failed_refunds():
    """Refund completed payments of canceled bookings that have no refund yet"""
    from stayhub.services.payment_service import retry_missing_refunds

    refunded = retry_missing_refunds()
    return f"Issued {refunded} refunds"


@celery.task
def update_property_ratings():
    """Recompute property ratings from reviews"""
    from stayhub import db
    from stayhub.models.property import Property

    properties = Property.query.all()

    for property in properties:
        property.update_rating()

    db.session.commit()

    return f"Updated ratings for {len(properties)} properties"


# Celery beat schedule
celery.conf.beat_schedule = {
    'expire-unpaid-bookings': {
        'task': 'celery_app.expire_unpaid_bookings',
        'schedule': 900.0,  # Every 15 minutes
    },
    'retry-failed-refunds': {
        'task': 'celery_app.retry_failed_refunds',
        'schedule': 3600.0,  # Every hour
    },
    'update-property-ratings': {
        'task': 'celery_app.update_property_ratings',
        'schedule': 21600.0,  # Every 6 hours
    },
}

if __name__ == '__main__':
    celery.start()
