from django import forms

from .constants import BOX_CODE_MAX_LENGTH, ITEM_NAME_MAX_LENGTH


def first_error(form: forms.Form) -> str:
    """One human-readable message for a JSON error response."""
    for field, errors in form.errors.items():
        if errors:
            label = "" if field == "__all__" else f"{field}: "
            return f"{label}{errors[0]}"
    return "Invalid input."


class LocationForm(forms.Form):
    name = forms.CharField(max_length=255, strip=True)


class BoxForm(forms.Form):
    code = forms.CharField(max_length=BOX_CODE_MAX_LENGTH, required=False, strip=True)
    name = forms.CharField(max_length=255, required=False, strip=True)
    location = forms.IntegerField(required=False)
    auto = forms.BooleanField(required=False)

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get("auto") and not cleaned.get("code"):
            self.add_error("code", "Box code is required (e.g. BOX-001).")
        return cleaned


class ItemForm(forms.Form):
    name = forms.CharField(max_length=ITEM_NAME_MAX_LENGTH, strip=True)
    description = forms.CharField(required=False, strip=True, widget=forms.Textarea(attrs={"rows": 3}))
    # Kept as text: fractional input is floored, not rejected.
    quantity = forms.CharField(required=False, strip=True)
    photo = forms.FileField(required=False)


class QuantityForm(forms.Form):
    delta = forms.IntegerField(required=False)
    quantity = forms.CharField(required=False, strip=True)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("delta") is None and not cleaned.get("quantity"):
            raise forms.ValidationError("Provide either delta or quantity.")
        return cleaned
