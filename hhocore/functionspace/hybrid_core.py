import numpy as np
from scipy.linalg import cho_factor, cho_solve, LinAlgError
from tqdm import tqdm

from .. import logger
from ..typing import TensorLike, BasisChoice, BasisType, CartesianFunction
from ..decorator import check_cartesian
from ..mesh.utils import ranges
from ..quadrature import QuadratureRule, generate_quadrature_rule
from .utils import NumericalInstabilityError, check_pivots, dim_Pcell, dim_Pface
from .monomial_basis import MonomialScalarBasisCell, MonomialScalarBasisFace
from .orthonormal_basis import orthonormal_basis
from .gram_matrix import compute_gram_matrix


def _check_index(i, n, name):
    if not (0 <= i < n):
        raise IndexError(f"{name} index {i} is out of range [0, {n})")
    return int(i)


class HybridDof3d():
    """
    The dof manager of the hybrid space: polynomials of degree L in the
    cells and of degree K on the faces.

    The global numbering puts the dofs of all the cells first, cell by cell,
    and then the dofs of all the faces, face by face. L = -1 means that the
    cell unknowns are not independent; every cell still carries one dof
    which is rebuilt from the face unknowns.
    """
    def __init__(self, mesh, K: int, L: int):
        if K < 0:
            raise ValueError(f"The face degree should be non negative, but it is {K}!")
        if L < -1:
            raise ValueError(f"The cell degree should be at least -1, but it is {L}!")
        self.mesh = mesh
        self.K = K
        self.L = L
        self.Ldeg = max(L, 0)
        self.cell2dof, self.cell2dofLocation = self.cell_to_dof()

    def number_of_local_dofs(self, doftype='all'):
        K = self.K
        if doftype == 'all': # number of all dofs on each cell, with its faces
            NFC = self.mesh.number_of_faces_of_cells()
            return self.number_of_local_dofs('cell') + NFC*self.number_of_local_dofs('face')
        elif doftype in {'cell', 3}:
            return dim_Pcell(self.Ldeg)
        elif doftype in {'face', 2}:
            return dim_Pface(K)
        elif doftype == 'highorder':
            return dim_Pcell(K+1)
        elif doftype == 'gradient':
            return dim_Pcell(K+1) - 1
        raise ValueError(f"doftype: {doftype} is wrong!")

    def number_of_global_dofs(self, doftype='all') -> int:
        mesh = self.mesh
        NC = mesh.number_of_cells()
        NF = mesh.number_of_faces()
        NBF = len(mesh.boundary_face_index())
        cdof = self.number_of_local_dofs('cell')
        fdof = self.number_of_local_dofs('face')
        if doftype == 'all':
            return NC*cdof + NF*fdof
        elif doftype in {'cell', 3}:
            return NC*cdof
        elif doftype in {'face', 2}:
            return NF*fdof
        elif doftype == 'internal_face':
            return (NF - NBF)*fdof
        elif doftype == 'boundary_face':
            return NBF*fdof
        raise ValueError(f"doftype: {doftype} is wrong!")

    def cell_offset(self, iT: int) -> int:
        iT = _check_index(iT, self.mesh.number_of_cells(), 'cell')
        return iT*self.number_of_local_dofs('cell')

    def face_offset(self, iF: int) -> int:
        iF = _check_index(iF, self.mesh.number_of_faces(), 'face')
        return self.number_of_global_dofs('cell') + iF*self.number_of_local_dofs('face')

    def face_to_dof(self) -> TensorLike:
        NF = self.mesh.number_of_faces()
        fdof = self.number_of_local_dofs('face')
        start = self.number_of_global_dofs('cell')
        return start + np.arange(NF*fdof).reshape(NF, fdof)

    def cell_to_dof(self, doftype='all'):
        """
        With `doftype='cell'`, the (NC, cdof) array of the cell dofs.

        With `doftype='all'`, the 1D array cell2dof with a location array
        cell2dofLocation. The dofs of the i-th cell, its own block followed
        by the blocks of its faces in local order, are

        cell2dof[cell2dofLocation[i]:cell2dofLocation[i+1]]
        """
        mesh = self.mesh
        NC = mesh.number_of_cells()
        cdof = self.number_of_local_dofs('cell')
        fdof = self.number_of_local_dofs('face')
        celldof = np.arange(NC*cdof).reshape(NC, cdof)
        if doftype in {'cell', 3}:
            return celldof
        elif doftype != 'all':
            raise ValueError(f"doftype: {doftype} is wrong!")

        cell, cellLocation = mesh.cell_to_face()
        NFC = np.diff(cellLocation)
        ldof = cdof + NFC*fdof
        cell2dofLocation = np.zeros(NC+1, dtype=np.int_)
        cell2dofLocation[1:] = np.cumsum(ldof)
        cell2dof = np.zeros(cell2dofLocation[-1], dtype=np.int_)

        idx = cell2dofLocation[:-1, None] + np.arange(cdof)
        cell2dof[idx] = celldof

        cellIdx = np.repeat(np.arange(NC), NFC)
        idx = (cell2dofLocation[cellIdx] + cdof + ranges(NFC)*fdof)[:, None] + np.arange(fdof)
        cell2dof[idx] = self.face_to_dof()[cell]
        return cell2dof, cell2dofLocation


class HybridCore():
    """
    Polynomial bases of the cells and faces of a polyhedral mesh, and the
    hybrid unknowns built on them.

    Parameters:
        mesh : PolyhedronMesh
        K : int
            Degree of the face polynomials, K >= 0.
        L : int
            Degree of the cell polynomials, L >= -1. L = -1 keeps one cell
            unknown rebuilt from the faces values.
        choice_basis : str
            'Mon' uses the scaled monomials as bases, 'ON' orthonormalizes
            them in L2 on every cell and face.
        doe_offset : int
            Added to every degree of exactness chosen internally for the
            quadrature rules.
        progress : bool
            Show progress bars while the bases are built.

    Notes:
        The cell bases have the degree max(K+1, L) so that they also serve
        high order reconstructions; the first `nlocal_cell_dofs` functions
        span the polynomials of degree max(L, 0). The face bases have the
        degree K. Everything is built once at construction.
    """
    def __init__(self, mesh, K: int, L: int, choice_basis: BasisChoice='Mon',
                 doe_offset: int=0, progress: bool=False):
        if choice_basis not in {'Mon', 'ON'}:
            raise ValueError(f"choice_basis: {choice_basis} is wrong, it should be 'Mon' or 'ON'!")
        self.mesh = mesh
        self.dof = HybridDof3d(mesh, K, L)
        self.K = K
        self.L = L
        self.Ldeg = self.dof.Ldeg
        self.choice_basis = choice_basis
        self.doe_offset = doe_offset
        self.celldegree = max(K+1, self.Ldeg)

        NC = mesh.number_of_cells()
        NF = mesh.number_of_faces()
        self.cellmonomials = []
        self.cellbases = []
        for iT in tqdm(range(NC), desc='cell bases', disable=not progress):
            cell = mesh.get_cell(iT)
            mon = MonomialScalarBasisCell(cell, self.celldegree)
            self.cellmonomials.append(mon)
            self.cellbases.append(self._create_basis(cell, mon))

        self.facemonomials = []
        self.facebases = []
        for iF in tqdm(range(NF), desc='face bases', disable=not progress):
            face = mesh.get_face(iF)
            mon = MonomialScalarBasisFace(face, K)
            self.facemonomials.append(mon)
            self.facebases.append(self._create_basis(face, mon))

        if L == -1:
            self.cellweights = [self.compute_weights(iT) for iT in range(NC)]
        else:
            self.cellweights = None

        logger.info(f"Hybrid core constructed with K={K}, L={L}, basis "
                    f"'{choice_basis}' and {self.ntotal_dofs} dofs.")

    def _create_basis(self, entity, mon):
        if self.choice_basis == 'Mon':
            return mon
        rule = generate_quadrature_rule(entity, 2*mon.degree + self.doe_offset)
        return orthonormal_basis(mon, rule)

    ## dof counts
    @property
    def ntotal_dofs(self) -> int:
        return self.dof.number_of_global_dofs('all')

    @property
    def nlocal_cell_dofs(self) -> int:
        return self.dof.number_of_local_dofs('cell')

    @property
    def ntotal_cell_dofs(self) -> int:
        return self.dof.number_of_global_dofs('cell')

    @property
    def nlocal_face_dofs(self) -> int:
        return self.dof.number_of_local_dofs('face')

    @property
    def ntotal_face_dofs(self) -> int:
        return self.dof.number_of_global_dofs('face')

    @property
    def ninternal_face_dofs(self) -> int:
        return self.dof.number_of_global_dofs('internal_face')

    @property
    def nboundary_face_dofs(self) -> int:
        return self.dof.number_of_global_dofs('boundary_face')

    @property
    def nhighorder_dofs(self) -> int:
        return self.dof.number_of_local_dofs('highorder')

    @property
    def ngradient_dofs(self) -> int:
        return self.dof.number_of_local_dofs('gradient')

    ## bases
    def _cell_index(self, iT):
        return _check_index(iT, self.mesh.number_of_cells(), 'cell')

    def _face_index(self, iF):
        return _check_index(iF, self.mesh.number_of_faces(), 'face')

    def cell_monomials(self, iT: int):
        return self.cellmonomials[self._cell_index(iT)]

    def face_monomials(self, iF: int):
        return self.facemonomials[self._face_index(iF)]

    def cell_basis(self, iT: int):
        return self.cellbases[self._cell_index(iT)]

    def face_basis(self, iF: int):
        return self.facebases[self._face_index(iF)]

    def cell_basis_matrix(self, iT: int) -> TensorLike:
        """The matrix T such that the cell basis is `T @ monomials`."""
        basis = self.cell_basis(iT)
        if self.choice_basis == 'Mon':
            return np.eye(basis.dimension())
        return basis.matrix

    def face_basis_matrix(self, iF: int) -> TensorLike:
        basis = self.face_basis(iF)
        if self.choice_basis == 'Mon':
            return np.eye(basis.dimension())
        return basis.matrix

    def _family(self, cellface, iTF, type_basis):
        if type_basis not in {'basis', 'monomial'}:
            raise ValueError(f"type_basis: {type_basis} is wrong, it should be 'basis' or 'monomial'!")
        if cellface == 'cell':
            if type_basis == 'basis':
                return self.cell_basis(iTF)
            return self.cell_monomials(iTF)
        elif cellface == 'face':
            if type_basis == 'basis':
                return self.face_basis(iTF)
            return self.face_monomials(iTF)
        raise ValueError(f"cellface: {cellface} is wrong, it should be 'cell' or 'face'!")

    def basis_quad(self, cellface: str, iTF: int, quad: QuadratureRule,
                   degree: int, type_basis: BasisType='basis') -> TensorLike:
        """
        Values of the basis functions of degree <= `degree` of a cell or a
        face at the nodes of `quad`.

        Parameters:
            cellface : str
                'cell' or 'face'.
            iTF : int
                Global index of the cell or the face.
            quad : QuadratureRule
                Rule on the same entity.
            degree : int
                The functions spanning the polynomials of degree <= `degree`
                are evaluated.
            type_basis : str
                'basis' for the configured basis, 'monomial' for the scaled
                monomials.

        Returns:
            TensorLike: phi of shape (ndof, NQ), `phi[i, q]` is the i-th
            function at the q-th node.
        """
        family = self._family(cellface, iTF, type_basis)
        dim = dim_Pcell if cellface == 'cell' else dim_Pface
        n = dim(degree)
        if n > family.dimension():
            raise ValueError(f"degree {degree} is larger than the degree "
                             f"{family.degree} of the {cellface} basis!")
        return family.values(quad.points)[:, :n].T

    def grad_basis_quad(self, iT: int, quad: QuadratureRule, degree: int,
                        type_basis: BasisType='basis') -> TensorLike:
        """Gradients of the cell basis functions, shape (ndof, NQ, 3)."""
        family = self._family('cell', iT, type_basis)
        n = dim_Pcell(degree)
        if n > family.dimension():
            raise ValueError(f"degree {degree} is larger than the degree "
                             f"{family.degree} of the cell basis!")
        return family.gradients(quad.points)[:, :n].transpose(1, 0, 2)

    def gram_matrix(self, f_quad: TensorLike, g_quad: TensorLike, nrows: int,
                    ncols: int, quad: QuadratureRule, sym: bool,
                    weight=None) -> TensorLike:
        return compute_gram_matrix(f_quad, g_quad, quad, nrows, ncols, sym=sym,
                                   weight=weight)

    ## interpolation
    def _evaluate(self, f, points):
        val = np.asarray(f(points), dtype=np.float64)
        return np.broadcast_to(val, points.shape[:-1])

    def _solve(self, M, b, entity):
        try:
            c = cho_factor(M, lower=True)
        except LinAlgError as e:
            raise NumericalInstabilityError(
                    f"The mass matrix of {entity!r} is not positive definite, "
                    f"try a quadrature rule with a higher degree of exactness.") from e
        check_pivots(c[0], f"The mass matrix of {entity!r}")
        return cho_solve(c, b)

    def interpolate(self, f: CartesianFunction, doe: int) -> TensorLike:
        """
        Interpolant of `f` in the hybrid space: the L2 projections of `f` on
        every face and in every cell.

        Parameters:
            f : callable
                Vectorized function of Cartesian points (..., 3).
            doe : int
                Degree of exactness of the quadrature rules.

        Returns:
            TensorLike: the global vector of coefficients, cells first and
            then faces.

        Raises:
            NumericalInstabilityError: if a local mass matrix can not be
            factorized.
        """
        check_cartesian(f)
        mesh = self.mesh
        Xh = np.zeros(self.ntotal_dofs, dtype=np.float64)

        fdof = self.nlocal_face_dofs
        for iF in range(mesh.number_of_faces()):
            face = mesh.get_face(iF)
            quad = generate_quadrature_rule(face, doe)
            phi = self.basis_quad('face', iF, quad, self.K)
            M = self.gram_matrix(phi, phi, fdof, fdof, quad, True)
            b = phi @ (quad.weights*self._evaluate(f, quad.points))
            start = self.dof.face_offset(iF)
            Xh[start:start+fdof] = self._solve(M, b, face)

        cdof = self.nlocal_cell_dofs
        for iT in range(mesh.number_of_cells()):
            cell = mesh.get_cell(iT)
            quad = generate_quadrature_rule(cell, doe)
            phi = self.basis_quad('cell', iT, quad, self.Ldeg)
            M = self.gram_matrix(phi, phi, cdof, cdof, quad, True)
            b = phi @ (quad.weights*self._evaluate(f, quad.points))
            start = self.dof.cell_offset(iT)
            Xh[start:start+cdof] = self._solve(M, b, cell)

        if self.L == -1:
            self._reconstruct_cell_values(Xh)
        return Xh

    def compute_weights(self, iT: int) -> TensorLike:
        """
        Weights of the faces of the cell iT to rebuild a cell value from
        face values when L = -1.

        The weight of the face F is `|F| d_TF/(3|T|)` with d_TF the distance
        from the center of mass of T to the plane of F; the weights sum to
        one, so constants are preserved.
        """
        cell = self.mesh.get_cell(iT)
        xT = cell.center_mass
        w = np.zeros(cell.n_faces, dtype=np.float64)
        for i in range(cell.n_faces):
            face = cell.face(i)
            dTF = np.dot(face.center_mass - xT, cell.face_normal(i))
            w[i] = face.measure*dTF
        return w/(3*cell.measure)

    def _reconstruct_cell_values(self, Xh):
        """Replace the cell unknowns by the weighted averages of the face
        unknowns, scaled by the constant values of the bases."""
        mesh = self.mesh
        for iT in range(mesh.number_of_cells()):
            cell = mesh.get_cell(iT)
            w = self.cellweights[iT].copy()
            phiT_cst = self.cellbases[iT].function(0, cell.center_mass)
            offsets = np.zeros(cell.n_faces, dtype=np.int_)
            for i in range(cell.n_faces):
                face = cell.face(i)
                iF = face.global_index
                phiF_cst = self.facebases[iF].function(0, face.center_mass)
                w[i] *= phiF_cst/phiT_cst
                offsets[i] = self.dof.face_offset(iF)
            Xh[self.dof.cell_offset(iT)] = np.dot(w, Xh[offsets])

    def restr(self, Xh: TensorLike, iT: int) -> TensorLike:
        """The unknowns of the cell iT and of its faces, in local order."""
        iT = self._cell_index(iT)
        loc = self.dof.cell2dofLocation
        return Xh[self.dof.cell2dof[loc[iT]:loc[iT+1]]]

    ## evaluation
    def evaluate_in_cell(self, XTF: TensorLike, iT: int, x: TensorLike) -> TensorLike:
        """Value at x of the cell polynomial of the cell iT defined by the
        global vector XTF."""
        n = self.nlocal_cell_dofs
        start = self.dof.cell_offset(iT)
        return self.cell_basis(iT).values(x)[..., :n] @ XTF[start:start+n]

    def evaluate_in_face(self, XTF: TensorLike, iF: int, x: TensorLike) -> TensorLike:
        n = self.nlocal_face_dofs
        start = self.dof.face_offset(iF)
        return self.face_basis(iF).values(x)[..., :n] @ XTF[start:start+n]

    ## norms
    def L2_norm(self, Xh: TensorLike) -> float:
        """L2 norm of the cell polynomials of Xh."""
        n = self.nlocal_cell_dofs
        value = 0.0
        for iT in range(self.mesh.number_of_cells()):
            quad = generate_quadrature_rule(self.mesh.get_cell(iT), 2*self.Ldeg + self.doe_offset)
            phi = self.basis_quad('cell', iT, quad, self.Ldeg)
            M = self.gram_matrix(phi, phi, n, n, quad, True)
            start = self.dof.cell_offset(iT)
            XT = Xh[start:start+n]
            value += XT @ M @ XT
        return np.sqrt(value)

    def H1_norm(self, Xh: TensorLike) -> float:
        """L2 norm of the gradients of the cell polynomials of Xh."""
        n = self.nlocal_cell_dofs
        value = 0.0
        for iT in range(self.mesh.number_of_cells()):
            quad = generate_quadrature_rule(self.mesh.get_cell(iT), 2*self.Ldeg + self.doe_offset)
            dphi = self.grad_basis_quad(iT, quad, self.Ldeg)
            M = self.gram_matrix(dphi, dphi, n, n, quad, True)
            start = self.dof.cell_offset(iT)
            XT = Xh[start:start+n]
            value += XT @ M @ XT
        return np.sqrt(value)

    def Linf_face(self, Xh: TensorLike) -> float:
        """Maximum of the absolute values of the face coefficients of Xh."""
        XF = Xh[self.ntotal_cell_dofs:self.ntotal_dofs]
        if len(XF) == 0:
            return 0.0
        return np.max(np.abs(XF))

    ## integration
    def quadrature_over_cell(self, iT: int, f, doe=None):
        """Call `f(iqn, x, w)` at every node of a quadrature rule on the cell
        iT."""
        doe = 2*self.Ldeg + 2 if doe is None else doe
        quad = generate_quadrature_rule(self.mesh.get_cell(iT), doe)
        for iqn, (x, w) in enumerate(quad):
            f(iqn, x, w)

    def quadrature_over_face(self, iF: int, f, doe=None):
        doe = 2*self.K + 2 if doe is None else doe
        quad = generate_quadrature_rule(self.mesh.get_face(iF), doe)
        for iqn, (x, w) in enumerate(quad):
            f(iqn, x, w)

    def integrate_over_cell(self, iT: int, f: CartesianFunction, doe=None) -> float:
        check_cartesian(f)
        doe = 2*self.Ldeg + 2 if doe is None else doe
        quad = generate_quadrature_rule(self.mesh.get_cell(iT), doe)
        return quad.integral(self._evaluate(f, quad.points))

    def integrate_over_face(self, iF: int, f: CartesianFunction, doe=None) -> float:
        check_cartesian(f)
        doe = 2*self.K + 2 if doe is None else doe
        quad = generate_quadrature_rule(self.mesh.get_face(iF), doe)
        return quad.integral(self._evaluate(f, quad.points))

    def integrate_over_domain(self, f, doe=None) -> float:
        value = 0.0
        for iT in range(self.mesh.number_of_cells()):
            value += self.integrate_over_cell(iT, f, doe=doe)
        return value

    ## visualization
    def vertex_values(self, Xh: TensorLike, from_dofs: str='cell') -> TensorLike:
        """
        Values at the mesh nodes: the average of the cell (or face)
        polynomials of Xh over the cells (or faces) sharing the node.
        """
        mesh = self.mesh
        NN = mesh.number_of_nodes()
        value = np.zeros(NN, dtype=np.float64)
        count = np.zeros(NN, dtype=np.int_)
        if from_dofs == 'cell':
            for iT in range(mesh.number_of_cells()):
                cell = mesh.get_cell(iT)
                idx = cell.node_index
                np.add.at(value, idx, self.evaluate_in_cell(Xh, iT, mesh.node[idx]))
                np.add.at(count, idx, 1)
        elif from_dofs == 'face':
            for iF in range(mesh.number_of_faces()):
                face = mesh.get_face(iF)
                idx = face.node_index
                np.add.at(value, idx, self.evaluate_in_face(Xh, iF, mesh.node[idx]))
                np.add.at(count, idx, 1)
        else:
            raise ValueError(f"from_dofs: {from_dofs} is wrong, it should be 'cell' or 'face'!")
        flag = count > 0
        value[flag] /= count[flag]
        return value
