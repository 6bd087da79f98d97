class RecipeHubError(Exception):
    """Base class for errors raised by the service layer."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidReferenceError(RecipeHubError):
    """A recipe refers to a category or ingredient that does not exist."""

    def __init__(self, message, category_id=None, ingredient_ids=()):
        super().__init__(message)
        self.category_id = category_id
        self.ingredient_ids = list(ingredient_ids)


class AccountError(RecipeHubError):
    pass


class DuplicateAccountError(AccountError):
    pass
