"""Signals for the conferences app."""

import logging

from django.db.models.signals import pre_delete, pre_save
from django.dispatch import receiver
from django.utils.text import slugify

from .capacity import release_fee_slot
from .models import Conference, Registration

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Conference)
def create_conference_slug(sender, instance, **kwargs):
    """Create a slug for the conference if not set."""
    if not instance.slug:
        base_slug = slugify(instance.name) or 'conference'

        # Check if slug already exists
        counter = 1
        slug = base_slug
        while Conference.objects.filter(slug=slug).exclude(pk=instance.pk).exists():
            slug = f"{base_slug}-{counter}"
            counter += 1

        instance.slug = slug


@receiver(pre_delete, sender=Registration)
def release_slot_on_delete(sender, instance, **kwargs):
    """A deleted registration that still held a fee slot gives it back."""
    if instance.holds_fee_slot and instance.registration_fee_id is not None:
        logger.info(f"[REGISTRATION] {instance.id} deleted while holding a slot")
        release_fee_slot(instance.registration_fee_id)
