import logging

from django.db import transaction
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from academics.authentication import IsAdministrator
from academics.identity import issue_token, resolve_identity
from academics.models import LEVEL_LABEL_RE, Filiere, Module
from grades.exceptions import NotFoundError
from grades.services.weighting import recompute_module_grades, validate_weights

logger = logging.getLogger(__name__)


class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(help_text="Email, ou code étudiant")
    password = serializers.CharField(trim_whitespace=False)


class LoginView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        identity = resolve_identity(serializer.validated_data["identifier"], serializer.validated_data["password"])
        return Response({"token": issue_token(identity), **identity.as_dict()}, status=status.HTTP_200_OK)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(request.user.as_dict())


class AdminWriteMixin:
    """Lecture pour toute session, écriture réservée aux administrateurs."""

    def get_permissions(self):
        if self.request.method in ("GET", "HEAD"):
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsAdministrator()]


class FiliereSerializer(serializers.ModelSerializer):
    code = serializers.CharField(max_length=32)
    levels = serializers.ListField(child=serializers.IntegerField(min_value=1, max_value=5))

    class Meta:
        model = Filiere
        fields = ["id", "name", "code", "formation", "degree", "levels"]

    def validate(self, attrs):
        values = {f: getattr(self.instance, f) for f in ("name", "code", "formation", "degree", "levels")} if self.instance else {}
        values.update(attrs)
        candidate = Filiere(pk=self.instance.pk if self.instance else None, **values)
        candidate.clean()
        return attrs


class FiliereListView(AdminWriteMixin, APIView):
    def get(self, request):
        return Response(FiliereSerializer(Filiere.objects.all(), many=True).data)

    def post(self, request):
        serializer = FiliereSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        filiere = serializer.save()
        logger.info("Filiere created", extra={"code": filiere.code})
        return Response(FiliereSerializer(filiere).data, status=status.HTTP_201_CREATED)


class ModuleSerializer(serializers.ModelSerializer):
    filiere = serializers.SlugRelatedField(slug_field="code", queryset=Filiere.objects.all())

    class Meta:
        model = Module
        fields = [
            "id",
            "code",
            "name",
            "description",
            "credits",
            "filiere",
            "academic_level",
            "semester",
            "professor",
            "capacity",
            "status",
            "cc_percentage",
            "exam_percentage",
        ]

    def _current(self, attrs, name):
        if name in attrs:
            return attrs[name]
        return getattr(self.instance, name) if self.instance else None

    def validate(self, attrs):
        cc = self._current(attrs, "cc_percentage")
        exam = self._current(attrs, "exam_percentage")
        if not self.instance:
            cc = Module._meta.get_field("cc_percentage").default if cc is None else cc
            exam = Module._meta.get_field("exam_percentage").default if exam is None else exam
        validate_weights(cc, exam)

        academic_level = self._current(attrs, "academic_level")
        filiere = self._current(attrs, "filiere")
        match = LEVEL_LABEL_RE.match(academic_level or "")
        if not match:
            raise serializers.ValidationError({"academic_level": "Format attendu: 'Level N'."})
        if filiere is not None and filiere.levels and int(match.group(1)) not in filiere.levels:
            raise serializers.ValidationError(
                {"academic_level": f"{academic_level} n'existe pas dans la filière {filiere.code}."}
            )
        return attrs


class ModuleListView(AdminWriteMixin, APIView):
    def get(self, request):
        qs = Module.objects.select_related("filiere")
        filiere = request.query_params.get("filiere")
        if filiere and filiere != "all":
            qs = qs.filter(filiere__code__iexact=filiere)
        return Response(ModuleSerializer(qs, many=True).data)

    def post(self, request):
        serializer = ModuleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        module = serializer.save()
        return Response(ModuleSerializer(module).data, status=status.HTTP_201_CREATED)


class ModuleDetailView(AdminWriteMixin, APIView):
    def _get(self, pk):
        module = Module.objects.select_related("filiere").filter(pk=pk).first()
        if module is None:
            raise NotFoundError("Module not found")
        return module

    def get(self, request, pk):
        return Response(ModuleSerializer(self._get(pk)).data)

    def patch(self, request, pk):
        module = self._get(pk)
        previous = (module.cc_percentage, module.exam_percentage)
        serializer = ModuleSerializer(module, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            module = serializer.save()
            recomputed = 0
            if (module.cc_percentage, module.exam_percentage) != previous:
                recomputed = recompute_module_grades(module)
        if recomputed:
            logger.info("Module weights changed, grades recomputed", extra={"module_id": module.pk, "recomputed": recomputed})
        return Response({**ModuleSerializer(module).data, "recomputed_grades": recomputed})
