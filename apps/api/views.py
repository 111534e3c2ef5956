"""
RESTful API for the fleet checklist system.

Views validate input with serializers and delegate every state change to the
services in apps.fleet / apps.accounts / apps.audit, which re-check
authorization through the shared policy.
"""

from django.contrib.auth import get_user_model
from django.http import HttpResponse
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import serializers, viewsets, permissions, filters, status
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from apps.accounts.permissions import Action, IsFleetAdmin, IsFleetUser
from apps.accounts.services import password_reset_service, user_service
from apps.audit import services as audit_services
from apps.audit.models import DeletionReport
from apps.fleet.models import DailyChecklist, Vehicle
from apps.fleet.services import checklist_service, report_service, vehicle_service
from apps.fleet.services.fuel_ledger import FUEL_TYPES, efficiency_rating

User = get_user_model()


class FleetPagination(PageNumberPagination):
    page_size = 25
    page_size_query_param = 'page_size'
    max_page_size = 100


# Serializers
class VehicleSerializer(serializers.ModelSerializer):

    class Meta:
        model = Vehicle
        fields = [
            'id', 'brand', 'model', 'year', 'license_plate', 'color',
            'mileage', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class RefuelingSerializer(serializers.Serializer):
    amount = serializers.FloatField(required=False, allow_null=True, min_value=0)
    price_per_liter = serializers.FloatField(required=False, allow_null=True, min_value=0, write_only=True)
    liters = serializers.FloatField(min_value=0)
    type = serializers.ChoiceField(choices=FUEL_TYPES)

    def validate(self, attrs):
        if attrs.get('amount') is None and attrs.get('price_per_liter') is None:
            raise serializers.ValidationError("Either amount or price_per_liter is required.")
        return attrs


class ChecklistSerializer(serializers.ModelSerializer):
    """Read representation of a trip, including derived fuel figures."""

    vehicle_label = serializers.SerializerMethodField()
    checklist_items = serializers.DictField(child=serializers.CharField(), read_only=True)
    distance = serializers.IntegerField(read_only=True)
    total_liters = serializers.SerializerMethodField()
    total_cost = serializers.SerializerMethodField()
    efficiency = serializers.SerializerMethodField()
    efficiency_rating = serializers.SerializerMethodField()

    class Meta:
        model = DailyChecklist
        fields = [
            'id', 'vehicle', 'vehicle_label', 'driver', 'driver_name',
            'departure_timestamp', 'arrival_timestamp', 'departure_mileage',
            'arrival_mileage', 'checklist_values', 'checklist_items', 'notes',
            'status', 'date', 'ai_diagnosis', 'refuelings', 'distance',
            'total_liters', 'total_cost', 'efficiency', 'efficiency_rating',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_vehicle_label(self, obj):
        try:
            vehicle = obj.vehicle
        except Vehicle.DoesNotExist:
            vehicle = None
        return vehicle.label if vehicle else report_service.VEHICLE_NOT_FOUND

    def get_total_liters(self, obj):
        return obj.ledger.total_liters()

    def get_total_cost(self, obj):
        return str(obj.ledger.total_cost())

    def get_efficiency(self, obj):
        value = obj.ledger.efficiency()
        return round(value, 2) if value is not None else None

    def get_efficiency_rating(self, obj):
        return efficiency_rating(obj.ledger.efficiency())


class DepartureSerializer(serializers.Serializer):
    vehicle = serializers.IntegerField()
    driver_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    departure_mileage = serializers.IntegerField(min_value=0)
    checklist_values = serializers.DictField(child=serializers.CharField())
    notes = serializers.CharField(required=False, allow_blank=True)


class ArrivalSerializer(serializers.Serializer):
    arrival_mileage = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    refuelings = RefuelingSerializer(many=True, required=False)


class UserSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'name', 'display_name', 'email', 'role',
            'is_active', 'must_change_password', 'created_at'
        ]
        read_only_fields = ['id', 'display_name', 'must_change_password', 'created_at']


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    password = serializers.CharField(required=False, write_only=True, min_length=8)


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField()
    new_password = serializers.CharField()


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField()


class DeletionReportSerializer(serializers.ModelSerializer):

    class Meta:
        model = DeletionReport
        fields = [
            'id', 'deleted_user_id', 'deleted_user_name', 'admin_id',
            'admin_name', 'reason', 'timestamp'
        ]
        read_only_fields = fields


class TripRowSerializer(serializers.Serializer):
    checklist_id = serializers.IntegerField()
    vehicle_id = serializers.IntegerField()
    vehicle_label = serializers.CharField()
    driver_name = serializers.CharField()
    date = serializers.DateField()
    departure_timestamp = serializers.DateTimeField()
    distance = serializers.IntegerField()
    liters = serializers.FloatField()
    cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    efficiency = serializers.FloatField(allow_null=True)
    efficiency_display = serializers.CharField()
    rating = serializers.CharField(allow_null=True)


def _month_params(request):
    today = timezone.localdate()
    try:
        year = int(request.query_params.get('year', today.year))
        month = int(request.query_params.get('month', today.month))
    except (TypeError, ValueError):
        raise serializers.ValidationError({'month': 'Year and month must be numbers.'})
    if not 1 <= month <= 12:
        raise serializers.ValidationError({'month': 'Month must be between 1 and 12.'})
    if not report_service.MIN_YEAR <= year <= report_service.MAX_YEAR:
        raise serializers.ValidationError({
            'year': f'Year must be between {report_service.MIN_YEAR} and {report_service.MAX_YEAR}.'
        })
    return year, month


def _vehicle_param(request, required=False):
    raw = request.query_params.get('vehicle')
    if raw in (None, ''):
        if required:
            raise serializers.ValidationError({'vehicle': 'This parameter is required.'})
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise serializers.ValidationError({'vehicle': 'Vehicle must be an id.'})


# ViewSets
class VehicleViewSet(viewsets.ModelViewSet):
    """Vehicles: readable by every fleet user, writable by admins."""

    serializer_class = VehicleSerializer
    pagination_class = FleetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['brand', 'year']
    search_fields = ['license_plate', 'brand', 'model']
    ordering_fields = ['brand', 'model', 'year', 'mileage', 'created_at']
    ordering = ['brand', 'model']
    required_action = Action.MANAGE_VEHICLES

    def get_queryset(self):
        return Vehicle.objects.all()

    def get_permissions(self):
        if self.action in ('list', 'retrieve', 'today'):
            return [IsFleetUser()]
        return [IsFleetAdmin()]

    def perform_create(self, serializer):
        serializer.instance = vehicle_service.save_vehicle(
            actor=self.request.user,
            data=serializer.validated_data,
        )

    def perform_update(self, serializer):
        serializer.instance = vehicle_service.save_vehicle(
            actor=self.request.user,
            data=serializer.validated_data,
            vehicle_id=serializer.instance.pk,
        )

    def perform_destroy(self, instance):
        vehicle_service.delete_vehicle(actor=self.request.user, vehicle_id=instance.pk)

    @action(detail=True, methods=['get'])
    def today(self, request, pk=None):
        """Today's checklist for a vehicle, if any."""
        vehicle = self.get_object()
        checklist = checklist_service.get_today_checklist_for_vehicle(vehicle.pk)
        if checklist is None:
            return Response({'checklist': None})
        return Response({'checklist': ChecklistSerializer(checklist).data})


class ChecklistViewSet(viewsets.ModelViewSet):
    """Daily checklists: departure (create), arrival, listing, deletion."""

    serializer_class = ChecklistSerializer
    pagination_class = FleetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['vehicle', 'status', 'date']
    search_fields = ['driver_name', 'notes']
    ordering_fields = ['departure_timestamp', 'date', 'status']
    ordering = ['-departure_timestamp']
    http_method_names = ['get', 'post', 'delete', 'head', 'options']
    required_action = Action.DELETE_CHECKLIST

    def get_queryset(self):
        # No select_related: trips of deleted vehicles must stay listed.
        return DailyChecklist.objects.prefetch_related('vehicle')

    def get_permissions(self):
        if self.action == 'destroy':
            return [IsFleetAdmin()]
        return [IsFleetUser()]

    def create(self, request, *args, **kwargs):
        """Record a departure."""
        payload = DepartureSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        checklist = checklist_service.create_departure(
            actor=request.user,
            vehicle_id=data['vehicle'],
            driver_name=data.get('driver_name', ''),
            departure_mileage=data['departure_mileage'],
            checklist_values=dict(data['checklist_values']),
            notes=data.get('notes', ''),
        )
        return Response(self.get_serializer(checklist).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        checklist_service.delete_checklist(actor=self.request.user, checklist_id=instance.pk)

    @action(detail=True, methods=['post'])
    def arrival(self, request, pk=None):
        """Record the arrival, or correct refuelings / mileage afterwards."""
        checklist = self.get_object()
        payload = ArrivalSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        refuelings = data.get('refuelings')
        checklist = checklist_service.record_arrival(
            actor=request.user,
            checklist_id=checklist.pk,
            arrival_mileage=data.get('arrival_mileage'),
            refuelings=[dict(r) for r in refuelings] if refuelings is not None else None,
        )
        return Response(self.get_serializer(checklist).data)

    @action(detail=True, methods=['get'], url_path='print')
    def print_view(self, request, pk=None):
        """Print-ready HTML of a single checklist."""
        checklist = self.get_object()
        return HttpResponse(report_service.render_checklist(checklist), content_type='text/html; charset=utf-8')


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """User management for admins, plus self-service password endpoints."""

    serializer_class = UserSerializer
    pagination_class = None

    ADMIN_ACTIONS = {
        'list': Action.MANAGE_USERS,
        'retrieve': Action.MANAGE_USERS,
        'create': Action.MANAGE_USERS,
        'role': Action.CHANGE_ROLE,
        'destroy': Action.DELETE_USER,
        'reset_password': Action.RESET_PASSWORD,
    }

    def get_queryset(self):
        return User.objects.all()

    def get_permissions(self):
        if self.action in ('password_reset', 'password_reset_confirm'):
            return [permissions.AllowAny()]
        if self.action in ('me', 'change_password'):
            return [permissions.IsAuthenticated()]
        self.required_action = self.ADMIN_ACTIONS.get(self.action, Action.MANAGE_USERS)
        return [IsFleetAdmin()]

    def list(self, request, *args, **kwargs):
        return Response(self.get_serializer(user_service.list_users(), many=True).data)

    def create(self, request, *args, **kwargs):
        payload = UserCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        user = user_service.create_user(created_by=request.user, **payload.validated_data)
        data = self.get_serializer(user).data
        if 'password' not in payload.validated_data:
            data['temporary_password'] = user._raw_password
        return Response(data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        """Delete a user; the reason is mandatory and ends up in the deletion report."""
        target = self.get_object()
        payload = ReasonSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        reason = payload.validated_data.get('reason') or request.query_params.get('reason', '')
        report = user_service.delete_user(actor=request.user, target_user=target, reason=reason)
        return Response(DeletionReportSerializer(report).data)

    @action(detail=True, methods=['post'])
    def role(self, request, pk=None):
        target = self.get_object()
        payload = RoleChangeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        user = user_service.change_role(
            actor=request.user,
            target_user=target,
            new_role=payload.validated_data['role'],
            reason=payload.validated_data.get('reason', ''),
        )
        return Response(self.get_serializer(user).data)

    @action(detail=True, methods=['post'], url_path='reset-password')
    def reset_password(self, request, pk=None):
        target = self.get_object()
        payload = ReasonSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        temp_password = password_reset_service.force_reset_password(
            actor=request.user,
            target_user=target,
            reason=payload.validated_data.get('reason', ''),
        )
        return Response({'temporary_password': temp_password})

    @action(detail=False, methods=['get'])
    def me(self, request):
        return Response(self.get_serializer(request.user).data)

    @action(detail=False, methods=['post'], url_path='change-password')
    def change_password(self, request):
        payload = ChangePasswordSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        password_reset_service.change_password(user=request.user, **payload.validated_data)
        return Response({'status': 'Password changed'})

    @action(detail=False, methods=['post'], url_path='password-reset')
    def password_reset(self, request):
        payload = PasswordResetRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        password_reset_service.send_password_reset_email(email=payload.validated_data['email'])
        # Same answer whether or not the address is known.
        return Response({'status': 'If the address is registered, a reset link has been sent.'})

    @action(detail=False, methods=['post'], url_path='password-reset-confirm')
    def password_reset_confirm(self, request):
        payload = PasswordResetConfirmSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        password_reset_service.confirm_password_reset(
            uidb64=payload.validated_data['uid'],
            token=payload.validated_data['token'],
            new_password=payload.validated_data['new_password'],
        )
        return Response({'status': 'Password has been reset'})


class DeletionReportViewSet(viewsets.ViewSet):
    """Audit trail of user deletions."""

    permission_classes = [IsFleetAdmin]
    required_action = Action.VIEW_DELETION_REPORTS

    def list(self, request):
        reports = audit_services.list_deletion_reports(actor=request.user)
        return Response(DeletionReportSerializer(reports, many=True).data)

    def destroy(self, request, pk=None):
        audit_services.delete_deletion_report(actor=request.user, report_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'])
    def clear(self, request):
        count = audit_services.delete_all_deletion_reports(actor=request.user)
        return Response({'deleted': count})


class ReportViewSet(viewsets.ViewSet):
    """Derived statistics and print projections."""

    permission_classes = [IsFleetUser]

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        summary = report_service.dashboard_summary()
        summary['recent_checklists'] = [
            {**row, 'date': row['date'].isoformat()} for row in summary['recent_checklists']
        ]
        return Response(summary)

    @action(detail=False, methods=['get'])
    def consumption(self, request):
        rows = report_service.consumption_report(vehicle_id=_vehicle_param(request))
        return Response(TripRowSerializer(rows, many=True).data)

    @action(detail=False, methods=['get'])
    def monthly(self, request):
        year, month = _month_params(request)
        report = report_service.monthly_report(
            vehicle_id=_vehicle_param(request, required=True), year=year, month=month,
        )
        return Response({
            'vehicle': VehicleSerializer(report.vehicle).data,
            'year': report.year,
            'month': report.month,
            'total': report.total,
            'with_problems': report.with_problems,
            'checklists': [
                {
                    'id': entry.checklist.pk,
                    'departure_timestamp': entry.checklist.departure_timestamp,
                    'driver_name': entry.checklist.driver_name,
                    'status': entry.checklist.status,
                    'notes': entry.notes,
                    'defects': [
                        {'item': d.item_key, 'title': d.title, 'value': d.value, 'label': d.label}
                        for d in entry.defects
                    ],
                }
                for entry in report.entries
            ],
        })

    @action(detail=False, methods=['get'], url_path='monthly/print')
    def monthly_print(self, request):
        year, month = _month_params(request)
        report = report_service.monthly_report(
            vehicle_id=_vehicle_param(request, required=True), year=year, month=month,
        )
        return HttpResponse(report_service.render_monthly_report(report), content_type='text/html; charset=utf-8')
