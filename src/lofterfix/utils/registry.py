def singleton(class_):
    """
    Singleton decorator
    :param class_: class
    :return: class instance
    """
    instances = {}

    def get_instance(*args, **kwargs):
        if class_ not in instances:
            instances[class_] = class_(*args, **kwargs)
        return instances[class_]

    return get_instance


@singleton
class EngineRegister(object):
    def __init__(self):
        self._engines_cls = dict()

    def register(self, name: str):
        def _register(cls):
            self._engines_cls[name] = cls
            return cls
        return _register

    def names(self):
        return sorted(self._engines_cls)

    def create(self, name: str, settings):
        if name not in self._engines_cls:
            raise KeyError(f"unknown inference backend '{name}', available: {self.names()}")
        return self._engines_cls[name](settings)


enginesRegister = EngineRegister()


def register_engine(name: str):
    return enginesRegister.register(name)
