from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from .models import Notification
from .serializers import NotificationSerializer
from .utils import mark_all_as_read, get_unread_count


@login_required
@require_http_methods(["GET"])
def notification_list(request):
    """Current user's notifications, newest first"""
    queryset = Notification.objects.filter(user=request.user)
    if request.GET.get('unread') == '1':
        queryset = queryset.filter(is_read=False)

    paginator = Paginator(queryset, 20)
    page = paginator.get_page(request.GET.get('page'))

    return JsonResponse({
        'results': NotificationSerializer(page.object_list, many=True).data,
        'unread_count': get_unread_count(request.user),
        'page': page.number,
        'num_pages': paginator.num_pages,
    })


@login_required
@require_http_methods(["POST"])
def mark_notification_read(request, notification_id):
    """Mark a single notification as read"""
    notification = get_object_or_404(Notification, id=notification_id, user=request.user)
    notification.mark_as_read()

    return JsonResponse({'success': True})


@login_required
@require_http_methods(["POST"])
def mark_all_notifications_read(request):
    """Mark all notifications as read"""
    updated = mark_all_as_read(request.user)
    return JsonResponse({'success': True, 'updated': updated})
