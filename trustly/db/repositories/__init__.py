from trustly.db.repositories.businesses import BusinessesRepository
from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.recipients import CampaignRecipientsRepository
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.db.repositories.media import TestimonialMediaRepository

__all__ = [
    "BusinessesRepository",
    "CampaignsRepository",
    "CampaignRecipientsRepository",
    "TestimonialsRepository",
    "TestimonialMediaRepository",
]
